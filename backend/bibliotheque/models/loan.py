"""
Modèle des emprunts.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bibliotheque.core.clock import utcnow
from bibliotheque.db.session import Base
from bibliotheque.models.base import UUIDMixin
from bibliotheque.models.enums import LoanStatus, OPEN_LOAN_STATUSES

if TYPE_CHECKING:
    from bibliotheque.models.book import Book
    from bibliotheque.models.user import User

_OPEN_LOAN_CLAUSE = text("statut IN ('ACTIVE', 'OVERDUE')")


class Loan(Base, UUIDMixin):
    """
    Emprunt d'un exemplaire de livre par un utilisateur.

    Règles métier:
        - Durée par défaut : 14 jours
        - Un utilisateur a au plus un emprunt en cours (ACTIVE ou OVERDUE)
        - date_retour_effectif n'est renseignée que si statut = RETURNED

    Les clés étrangères passent à NULL si l'utilisateur ou le livre est
    supprimé ; la suppression est refusée tant qu'un emprunt est en cours,
    donc seul l'historique est concerné.

    Attributes:
        id: Identifiant unique
        user_id: Utilisateur emprunteur
        book_id: Livre emprunté
        date_emprunt: Début de l'emprunt
        date_retour_prevu: Échéance (date_emprunt + durée)
        date_retour_effectif: Date du retour (None tant que non rendu)
        statut: ACTIVE, OVERDUE ou RETURNED
    """
    __tablename__ = "loans"

    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    book_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="SET NULL"),
        nullable=True,
    )
    date_emprunt: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    date_retour_prevu: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    date_retour_effectif: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
    )
    statut: Mapped[LoanStatus] = mapped_column(
        SQLEnum(LoanStatus, name="loan_status", native_enum=False, length=16),
        nullable=False,
        default=LoanStatus.ACTIVE,
    )

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")
    book: Mapped[Optional["Book"]] = relationship("Book", lazy="selectin")

    __table_args__ = (
        Index("ix_loans_user_id", "user_id"),
        Index("ix_loans_book_id", "book_id"),
        Index("ix_loans_statut_due", "statut", "date_retour_prevu"),
        # Un seul emprunt en cours par utilisateur
        Index(
            "uq_loans_user_open",
            "user_id",
            unique=True,
            sqlite_where=_OPEN_LOAN_CLAUSE,
            postgresql_where=_OPEN_LOAN_CLAUSE,
        ),
    )

    def __repr__(self) -> str:
        return f"<Loan {self.id} - {self.statut.value}>"

    @property
    def is_open(self) -> bool:
        """True tant que le livre n'est pas rendu."""
        return self.statut in OPEN_LOAN_STATUSES
