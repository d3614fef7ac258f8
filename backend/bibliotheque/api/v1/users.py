"""
Endpoints de gestion des utilisateurs.

Contrats:
    - POST /users: Crée un utilisateur
    - GET /users: Liste les utilisateurs (inscrits récents d'abord)
    - GET /users/{user_id}: Détail d'un utilisateur
    - PUT /users/{user_id}: Modification partielle
    - DELETE /users/{user_id}: Suppression (refusée si emprunt en cours)
    - GET /users/{user_id}/loans: Emprunts d'un utilisateur

Status codes:
    - 200: Succès
    - 201: Créé
    - 204: Supprimé
    - 404: Utilisateur introuvable
    - 409: Email déjà utilisé ou emprunt en cours
"""

from fastapi import APIRouter, Response, status

from bibliotheque.core.deps import DbSession, Loans
from bibliotheque.core.exceptions import NotFoundError
from bibliotheque.schemas.loan import LoanDetail
from bibliotheque.schemas.user import UserCreate, UserRead, UserUpdate
from bibliotheque.services.user import UserService

router = APIRouter(prefix="/users", tags=["Users"])

USER_NOT_FOUND = "Utilisateur non trouvé"


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un utilisateur",
)
async def create_user(data: UserCreate, db: DbSession) -> UserRead:
    service = UserService(db)
    user = await service.create(data)
    return UserRead.model_validate(user)


@router.get(
    "",
    response_model=list[UserRead],
    summary="Lister les utilisateurs",
)
async def list_users(db: DbSession) -> list[UserRead]:
    service = UserService(db)
    users = await service.list_users()
    return [UserRead.model_validate(user) for user in users]


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Détail d'un utilisateur",
)
async def get_user(user_id: str, db: DbSession) -> UserRead:
    service = UserService(db)
    user = await service.get(user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return UserRead.model_validate(user)


@router.put(
    "/{user_id}",
    response_model=UserRead,
    summary="Modifier un utilisateur",
    description="Modification partielle : seuls les champs fournis sont changés.",
)
async def update_user(user_id: str, data: UserUpdate, db: DbSession) -> UserRead:
    service = UserService(db)
    user = await service.update(user_id, data)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return UserRead.model_validate(user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un utilisateur",
    description="Refusé (409) tant que l'utilisateur a un emprunt en cours.",
)
async def delete_user(user_id: str, db: DbSession) -> Response:
    service = UserService(db)
    if not await service.delete(user_id):
        raise NotFoundError(USER_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{user_id}/loans",
    response_model=list[LoanDetail],
    summary="Emprunts d'un utilisateur",
)
async def list_user_loans(user_id: str, service: Loans) -> list[LoanDetail]:
    """Tous les emprunts de l'utilisateur, plus récents d'abord."""
    loans = await service.list_by_user(user_id)
    return [LoanDetail.from_loan(loan) for loan in loans]
