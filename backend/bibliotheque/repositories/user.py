"""
Repository des utilisateurs.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.models.user import User
from bibliotheque.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository CRUD des utilisateurs."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> User | None:
        """Cherche un utilisateur par email."""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def email_exists(self, email: str, exclude_id: str | None = None) -> bool:
        """Vérifie si l'email est déjà pris (hors utilisateur exclude_id)."""
        user = await self.get_by_email(email)
        return user is not None and user.id != exclude_id

    async def list_all(self) -> list[User]:
        """Liste les utilisateurs, inscrits les plus récents d'abord."""
        result = await self.db.execute(
            select(User).order_by(User.date_inscription.desc())
        )
        return list(result.scalars().all())
