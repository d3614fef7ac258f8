"""
Repository des emprunts.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bibliotheque.models.enums import LoanStatus, OPEN_LOAN_STATUSES
from bibliotheque.models.loan import Loan
from bibliotheque.repositories.base import BaseRepository


class LoanRepository(BaseRepository[Loan]):
    """Repository CRUD des emprunts."""

    def __init__(self, db: AsyncSession):
        super().__init__(Loan, db)

    def _with_details(self):
        return select(Loan).options(
            selectinload(Loan.user),
            selectinload(Loan.book),
        )

    async def get_with_relations(self, loan_id: str) -> Loan | None:
        """Cherche un emprunt avec son utilisateur et son livre, rechargés."""
        result = await self.db.execute(
            self._with_details()
            .where(Loan.id == loan_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_open_by_user(self, user_id: str) -> Loan | None:
        """Emprunt en cours (ACTIVE ou OVERDUE) d'un utilisateur, s'il existe."""
        result = await self.db.execute(
            select(Loan)
            .where(
                Loan.user_id == user_id,
                Loan.statut.in_(OPEN_LOAN_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_open_by_user(self, user_id: str) -> int:
        """Compte les emprunts en cours d'un utilisateur."""
        result = await self.db.execute(
            select(func.count(Loan.id))
            .where(
                Loan.user_id == user_id,
                Loan.statut.in_(OPEN_LOAN_STATUSES),
            )
        )
        return result.scalar_one()

    async def count_open_by_book(self, book_id: str) -> int:
        """Compte les emprunts en cours d'un livre."""
        result = await self.db.execute(
            select(func.count(Loan.id))
            .where(
                Loan.book_id == book_id,
                Loan.statut.in_(OPEN_LOAN_STATUSES),
            )
        )
        return result.scalar_one()

    async def count_open_grouped_by_book(self) -> dict[str, int]:
        """Nombre d'emprunts en cours par livre."""
        result = await self.db.execute(
            select(Loan.book_id, func.count(Loan.id))
            .where(
                Loan.book_id.is_not(None),
                Loan.statut.in_(OPEN_LOAN_STATUSES),
            )
            .group_by(Loan.book_id)
        )
        return {book_id: count for book_id, count in result.all()}

    async def list_by_status(self, status: LoanStatus) -> list[Loan]:
        """
        Liste les emprunts d'un statut, avec utilisateur et livre.

        Ordre :
            - ACTIVE: date d'emprunt, plus récent d'abord
            - OVERDUE: échéance, plus ancienne d'abord
            - RETURNED: date de retour, plus récente d'abord
        """
        order = {
            LoanStatus.ACTIVE: Loan.date_emprunt.desc(),
            LoanStatus.OVERDUE: Loan.date_retour_prevu.asc(),
            LoanStatus.RETURNED: Loan.date_retour_effectif.desc(),
        }[status]

        result = await self.db.execute(
            self._with_details()
            .where(Loan.statut == status)
            .order_by(order)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_by_user(self, user_id: str) -> list[Loan]:
        """Liste tous les emprunts d'un utilisateur, plus récents d'abord."""
        result = await self.db.execute(
            self._with_details()
            .where(Loan.user_id == user_id)
            .order_by(Loan.date_emprunt.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_past_due(self, now: datetime) -> list[Loan]:
        """Emprunts encore ACTIVE dont l'échéance est dépassée."""
        result = await self.db.execute(
            select(Loan)
            .where(
                Loan.statut == LoanStatus.ACTIVE,
                Loan.date_retour_prevu < now,
            )
            .order_by(Loan.date_retour_prevu)
        )
        return list(result.scalars().all())
