"""
Endpoints des emprunts.

Contrats:
    - POST /loans: Crée un emprunt (en-tête Idempotency-Key optionnel)
    - GET /loans/active: Emprunts en cours dans les temps
    - GET /loans/overdue: Emprunts en retard (marque les emprunts échus)
    - GET /loans/history: Emprunts rendus
    - GET /loans/{id}: Détail d'un emprunt
    - PATCH /loans/{id}/return: Retour d'un livre

Status codes:
    - 200: Succès (ou rejeu idempotent de POST /loans)
    - 201: Emprunt créé
    - 400: Règle métier violée (utilisateur inactif, livre indisponible,
           emprunt déjà en cours, emprunt déjà rendu)
    - 404: Utilisateur, livre ou emprunt introuvable
"""

from fastapi import APIRouter, Header, Response, status

from bibliotheque.core.deps import Idempotency, Loans
from bibliotheque.core.exceptions import NotFoundError
from bibliotheque.schemas.loan import DEFAULT_LOAN_DURATION_DAYS, LoanCreate, LoanDetail

router = APIRouter(prefix="/loans", tags=["Loans"])

LOAN_NOT_FOUND = "Emprunt non trouvé"


@router.post(
    "",
    response_model=LoanDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Emprunter un livre",
    description=f"Crée un emprunt de {DEFAULT_LOAN_DURATION_DAYS} jours par défaut. "
                "Un utilisateur ne peut avoir qu'un emprunt en cours.",
)
async def create_loan(
    data: LoanCreate,
    response: Response,
    service: Loans,
    idempotency: Idempotency,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
) -> LoanDetail:
    """
    Crée un emprunt.

    Si Idempotency-Key est déjà associé à un emprunt, celui-ci est
    retourné avec le statut 200 au lieu d'en créer un second.

    Raises:
        400: Utilisateur inactif, livre indisponible ou emprunt déjà en cours
        404: Utilisateur ou livre introuvable
    """
    loan, created = await service.checkout_once(
        data.user_id,
        data.book_id,
        data.duration_days,
        idempotency_key,
        idempotency,
    )
    if not created:
        response.status_code = status.HTTP_200_OK

    return LoanDetail.from_loan(loan)


@router.get(
    "/active",
    response_model=list[LoanDetail],
    summary="Emprunts en cours",
)
async def list_active_loans(service: Loans) -> list[LoanDetail]:
    loans = await service.list_active()
    return [LoanDetail.from_loan(loan) for loan in loans]


@router.get(
    "/overdue",
    response_model=list[LoanDetail],
    summary="Emprunts en retard",
    description="Les emprunts en cours dont l'échéance est dépassée passent "
                "au statut OVERDUE lors de cet appel.",
)
async def list_overdue_loans(service: Loans) -> list[LoanDetail]:
    loans = await service.list_overdue()
    return [LoanDetail.from_loan(loan) for loan in loans]


@router.get(
    "/history",
    response_model=list[LoanDetail],
    summary="Historique des emprunts rendus",
)
async def list_loan_history(service: Loans) -> list[LoanDetail]:
    loans = await service.list_history()
    return [LoanDetail.from_loan(loan) for loan in loans]


@router.get(
    "/{loan_id}",
    response_model=LoanDetail,
    summary="Détail d'un emprunt",
)
async def get_loan(loan_id: str, service: Loans) -> LoanDetail:
    loan = await service.get(loan_id)
    if loan is None:
        raise NotFoundError(LOAN_NOT_FOUND)
    return LoanDetail.from_loan(loan)


@router.patch(
    "/{loan_id}/return",
    response_model=LoanDetail,
    summary="Rendre un livre",
    description="Accepte les emprunts en cours ou en retard ; refuse un emprunt déjà rendu.",
)
async def return_loan(loan_id: str, service: Loans) -> LoanDetail:
    """
    Enregistre le retour d'un livre.

    Raises:
        400: L'emprunt a déjà été rendu
        404: Emprunt introuvable
    """
    loan = await service.return_loan(loan_id)
    if loan is None:
        raise NotFoundError(LOAN_NOT_FOUND)
    return LoanDetail.from_loan(loan)
