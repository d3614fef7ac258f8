"""
Endpoints du catalogue de livres.

Contrats:
    - POST /books: Ajoute un livre
    - GET /books: Liste les livres (?search=... ou ?disponible=true)
    - GET /books/{book_id}: Détail d'un livre
    - PUT /books/{book_id}: Modification partielle
    - DELETE /books/{book_id}: Suppression (refusée si emprunt en cours)

Status codes:
    - 200: Succès
    - 201: Créé
    - 204: Supprimé
    - 404: Livre introuvable
    - 409: ISBN déjà utilisé ou emprunt en cours
"""

from fastapi import APIRouter, Query, Response, status

from bibliotheque.core.deps import DbSession
from bibliotheque.core.exceptions import NotFoundError
from bibliotheque.schemas.book import BookCreate, BookRead, BookUpdate
from bibliotheque.services.book import BookService

router = APIRouter(prefix="/books", tags=["Books"])

BOOK_NOT_FOUND = "Livre non trouvé"


@router.post(
    "",
    response_model=BookRead,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un livre",
)
async def create_book(data: BookCreate, db: DbSession) -> BookRead:
    service = BookService(db)
    book = await service.create(data)
    return BookRead.model_validate(book)


@router.get(
    "",
    response_model=list[BookRead],
    summary="Lister les livres",
    description="Recherche sur titre, auteur et genre avec ?search=, "
                "livres disponibles seulement avec ?disponible=true.",
)
async def list_books(
    db: DbSession,
    search: str | None = Query(None, min_length=1, description="Fragment de titre, auteur ou genre"),
    disponible: bool | None = Query(None, description="true : seulement les livres disponibles"),
) -> list[BookRead]:
    service = BookService(db)

    if search:
        books = await service.search(search)
    elif disponible:
        books = await service.list_available()
    else:
        books = await service.list_books()

    return [BookRead.model_validate(book) for book in books]


@router.get(
    "/{book_id}",
    response_model=BookRead,
    summary="Détail d'un livre",
)
async def get_book(book_id: str, db: DbSession) -> BookRead:
    service = BookService(db)
    book = await service.get(book_id)
    if book is None:
        raise NotFoundError(BOOK_NOT_FOUND)
    return BookRead.model_validate(book)


@router.put(
    "/{book_id}",
    response_model=BookRead,
    summary="Modifier un livre",
)
async def update_book(book_id: str, data: BookUpdate, db: DbSession) -> BookRead:
    service = BookService(db)
    book = await service.update(book_id, data)
    if book is None:
        raise NotFoundError(BOOK_NOT_FOUND)
    return BookRead.model_validate(book)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un livre",
    description="Refusé (409) tant que le livre a un emprunt en cours.",
)
async def delete_book(book_id: str, db: DbSession) -> Response:
    service = BookService(db)
    if not await service.delete(book_id):
        raise NotFoundError(BOOK_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
