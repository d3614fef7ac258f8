"""
Service de gestion du catalogue de livres.

Le catalogue tient le compteur d'exemplaires en rayon et en déduit la
disponibilité. Seuls les emprunts et retours déplacent ce compteur ; une
modification du nombre d'exemplaires possédés le recalcule à partir des
emprunts en cours.
take_copy, release_copy et set_copy_count sont appelés par le service
des emprunts à l'intérieur de sa propre transaction et ne valident rien
eux-mêmes.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.core.exceptions import ConflictError, ValidationError
from bibliotheque.db.session import transaction
from bibliotheque.models.book import Book
from bibliotheque.repositories.book import BookRepository
from bibliotheque.repositories.loan import LoanRepository
from bibliotheque.schemas.book import BookCreate, BookUpdate

logger = logging.getLogger(__name__)

ISBN_TAKEN = "Un livre avec cet ISBN existe déjà"
REQUIRED_FIELDS = "Les champs titre, auteur, isbn, annee_publication et genre sont obligatoires"
BOOK_HAS_OPEN_LOANS = "Impossible de supprimer un livre ayant des emprunts en cours"
COPIES_EXCEED_TOTAL = "Le nombre d'exemplaires en rayon dépasse le nombre possédé"
TOTAL_BELOW_OPEN_LOANS = "Le nombre d'exemplaires possédés est inférieur au nombre d'emprunts en cours"


class BookService:
    """Service des opérations sur les livres."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = BookRepository(db)
        self.loan_repo = LoanRepository(db)

    # ==========================================
    # Lecture
    # ==========================================

    async def get(self, book_id: str) -> Book | None:
        """Cherche un livre par ID."""
        return await self.repo.get_by_id(book_id)

    async def get_by_isbn(self, isbn: str) -> Book | None:
        """Cherche un livre par ISBN."""
        return await self.repo.get_by_isbn(isbn)

    async def list_books(self) -> list[Book]:
        """Liste les livres, ajouts les plus récents d'abord."""
        return await self.repo.list_all()

    async def list_available(self) -> list[Book]:
        """Liste les livres disponibles."""
        return await self.repo.list_available()

    async def search(self, query: str) -> list[Book]:
        """Recherche par fragment de titre, auteur ou genre (sans classement)."""
        return await self.repo.search(query)

    # ==========================================
    # Écriture
    # ==========================================

    async def create(self, data: BookCreate) -> Book:
        """
        Ajoute un livre au catalogue, entièrement disponible.

        Raises:
            ValidationError: Champ obligatoire vide
            ConflictError: ISBN déjà utilisé
        """
        if (
            not data.titre
            or not data.auteur
            or not data.isbn
            or data.annee_publication is None
            or not data.genre
        ):
            raise ValidationError(REQUIRED_FIELDS)
        if data.nombre_exemplaires < 1:
            raise ValidationError("Un livre doit avoir au moins un exemplaire")

        try:
            async with transaction(self.db):
                if await self.repo.isbn_exists(data.isbn):
                    raise ConflictError(ISBN_TAKEN)
                book = await self.repo.add(
                    titre=data.titre,
                    auteur=data.auteur,
                    isbn=data.isbn,
                    annee_publication=data.annee_publication,
                    genre=data.genre,
                    description=data.description or "",
                    nombre_exemplaires=data.nombre_exemplaires,
                    exemplaires_total=data.nombre_exemplaires,
                    disponible=True,
                )
        except IntegrityError:
            raise ConflictError(ISBN_TAKEN)

        logger.info(f"Livre créé : {book.isbn} (ID: {book.id}, {book.exemplaires_total} ex.)")
        return book

    async def update(self, book_id: str, data: BookUpdate) -> Book | None:
        """
        Modifie partiellement un livre.

        Si exemplaires_total change, les exemplaires en rayon sont recalculés
        (possédés moins empruntés) et la disponibilité en est déduite.

        Returns:
            Le livre modifié, ou None s'il n'existe pas

        Raises:
            ConflictError: Nouvel ISBN déjà pris par un autre livre
            ValidationError: Moins d'exemplaires possédés que d'emprunts en cours
        """
        try:
            async with transaction(self.db):
                book = await self.repo.get_by_id(book_id)
                if book is None:
                    return None

                if data.isbn and data.isbn != book.isbn:
                    if await self.repo.isbn_exists(data.isbn, exclude_id=book_id):
                        raise ConflictError(ISBN_TAKEN)

                fields = data.model_dump(exclude_unset=True, exclude_none=True)
                if "exemplaires_total" in fields:
                    fields.update(await self._shelf_for_total(book, fields["exemplaires_total"]))
                await self.repo.update(book, **fields)
        except IntegrityError:
            raise ConflictError(ISBN_TAKEN)

        return book

    async def delete(self, book_id: str) -> bool:
        """
        Supprime un livre.

        Returns:
            True si supprimé, False s'il n'existait pas

        Raises:
            ConflictError: Le livre a un emprunt en cours
        """
        async with transaction(self.db):
            if await self.loan_repo.count_open_by_book(book_id) > 0:
                raise ConflictError(BOOK_HAS_OPEN_LOANS)

            book = await self.repo.get_by_id(book_id)
            if book is None:
                return False

            await self.repo.delete(book)

        logger.info(f"Livre supprimé : {book_id}")
        return True

    # ==========================================
    # Exemplaires (appelés par LoanService)
    # ==========================================

    async def take_copy(self, book_id: str) -> bool:
        """
        Retire un exemplaire du rayon pour un emprunt.

        Returns:
            False si plus aucun exemplaire n'était en rayon
        """
        return await self.repo.take_copy(book_id)

    async def release_copy(self, book_id: str) -> bool:
        """
        Remet en rayon l'exemplaire d'un emprunt rendu.

        Returns:
            False si le compteur était déjà au maximum
        """
        return await self.repo.put_back_copy(book_id)

    async def set_copy_count(self, book: Book, nombre_exemplaires: int) -> Book:
        """Fixe le nombre d'exemplaires en rayon et la disponibilité associée."""
        if nombre_exemplaires > book.exemplaires_total:
            raise ValidationError(COPIES_EXCEED_TOTAL)
        return await self.repo.update(
            book,
            nombre_exemplaires=nombre_exemplaires,
            disponible=nombre_exemplaires > 0,
        )

    async def _shelf_for_total(self, book: Book, total: int) -> dict:
        # En rayon = possédés - empruntés
        open_loans = await self.loan_repo.count_open_by_book(book.id)
        if total < open_loans:
            raise ValidationError(TOTAL_BELOW_OPEN_LOANS)
        remaining = total - open_loans
        return {"nombre_exemplaires": remaining, "disponible": remaining > 0}
