"""
Repository des livres.
"""

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.models.book import Book
from bibliotheque.repositories.base import BaseRepository


class BookRepository(BaseRepository[Book]):
    """Repository CRUD des livres."""

    def __init__(self, db: AsyncSession):
        super().__init__(Book, db)

    async def get_by_isbn(self, isbn: str) -> Book | None:
        """Cherche un livre par ISBN."""
        result = await self.db.execute(select(Book).where(Book.isbn == isbn))
        return result.scalar_one_or_none()

    async def isbn_exists(self, isbn: str, exclude_id: str | None = None) -> bool:
        """Vérifie si l'ISBN est déjà pris (hors livre exclude_id)."""
        book = await self.get_by_isbn(isbn)
        return book is not None and book.id != exclude_id

    async def list_all(self) -> list[Book]:
        """Liste les livres, ajouts les plus récents d'abord."""
        result = await self.db.execute(
            select(Book).order_by(Book.date_ajout.desc())
        )
        return list(result.scalars().all())

    async def list_available(self) -> list[Book]:
        """Liste les livres ayant au moins un exemplaire en rayon."""
        result = await self.db.execute(
            select(Book)
            .where(Book.disponible.is_(True))
            .order_by(Book.date_ajout.desc())
        )
        return list(result.scalars().all())

    async def search(self, query: str) -> list[Book]:
        """
        Recherche insensible à la casse sur titre, auteur et genre.

        Args:
            query: Fragment recherché
        """
        pattern = f"%{query}%"
        result = await self.db.execute(
            select(Book)
            .where(
                or_(
                    Book.titre.ilike(pattern),
                    Book.auteur.ilike(pattern),
                    Book.genre.ilike(pattern),
                )
            )
            .order_by(Book.date_ajout.desc())
        )
        return list(result.scalars().all())

    async def take_copy(self, book_id: str) -> bool:
        """
        Retire un exemplaire du rayon (compare-and-set).

        La décrémentation n'a lieu que s'il reste au moins un exemplaire,
        en une seule instruction : deux emprunts concurrents ne peuvent
        pas passer le compteur sous zéro.

        Returns:
            True si un exemplaire a été retiré, False sinon
        """
        result = await self.db.execute(
            update(Book)
            .where(Book.id == book_id, Book.nombre_exemplaires > 0)
            .values(
                nombre_exemplaires=Book.nombre_exemplaires - 1,
                disponible=Book.nombre_exemplaires > 1,
            )
            .execution_options(synchronize_session=False)
        )
        return await self._refreshed(book_id, result.rowcount == 1)

    async def put_back_copy(self, book_id: str) -> bool:
        """
        Remet un exemplaire en rayon, sans dépasser le nombre possédé.

        Returns:
            True si le compteur a été incrémenté, False sinon
        """
        result = await self.db.execute(
            update(Book)
            .where(
                Book.id == book_id,
                Book.nombre_exemplaires < Book.exemplaires_total,
            )
            .values(
                nombre_exemplaires=Book.nombre_exemplaires + 1,
                disponible=True,
            )
            .execution_options(synchronize_session=False)
        )
        return await self._refreshed(book_id, result.rowcount == 1)

    async def _refreshed(self, book_id: str, changed: bool) -> bool:
        # Recharge l'instance de la session après un UPDATE en masse
        if changed:
            await self.db.get(Book, book_id, populate_existing=True)
        return changed
