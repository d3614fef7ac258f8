"""
Schemas Pydantic des emprunts.
"""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from bibliotheque.core.clock import utcnow
from bibliotheque.models.enums import LoanStatus

# Constantes métier
DEFAULT_LOAN_DURATION_DAYS = 14
MAX_LOAN_DURATION_DAYS = 365


class LoanCreate(BaseModel):
    """Schema de création d'un emprunt."""

    user_id: str = Field(..., min_length=1, description="ID de l'utilisateur")
    book_id: str = Field(..., min_length=1, description="ID du livre")
    duration_days: int | None = Field(
        None,
        ge=1,
        description=f"Durée en jours (défaut {DEFAULT_LOAN_DURATION_DAYS})",
    )


class LoanUserSummary(BaseModel):
    """Champs de l'utilisateur recopiés pour l'affichage."""

    nom: str
    prenom: str
    email: str

    model_config = {"from_attributes": True}


class LoanBookSummary(BaseModel):
    """Champs du livre recopiés pour l'affichage."""

    titre: str
    auteur: str
    isbn: str
    nombre_exemplaires: int

    model_config = {"from_attributes": True}


class LoanRead(BaseModel):
    """Schema de lecture simple d'un emprunt."""

    id: str
    user_id: str | None
    book_id: str | None
    date_emprunt: datetime
    date_retour_prevu: datetime
    date_retour_effectif: datetime | None = None
    statut: LoanStatus

    model_config = {"from_attributes": True}


class LoanDetail(LoanRead):
    """
    Emprunt avec les informations de l'utilisateur et du livre.

    user et book valent None si l'entité a été supprimée depuis
    (historique uniquement).
    """

    user: LoanUserSummary | None = None
    book: LoanBookSummary | None = None

    @computed_field
    @property
    def days_overdue(self) -> int:
        """Jours de retard (0 si rendu ou dans les temps)."""
        if self.statut == LoanStatus.RETURNED:
            return 0
        delta = utcnow() - self.date_retour_prevu.replace(tzinfo=None)
        return max(0, delta.days)

    @classmethod
    def from_loan(cls, loan) -> "LoanDetail":
        """
        Construit un LoanDetail à partir d'un Loan SQLAlchemy.

        Args:
            loan: Objet Loan avec ses relations user et book chargées
        """
        user = getattr(loan, "user", None)
        book = getattr(loan, "book", None)

        return cls(
            id=loan.id,
            user_id=loan.user_id,
            book_id=loan.book_id,
            date_emprunt=loan.date_emprunt,
            date_retour_prevu=loan.date_retour_prevu,
            date_retour_effectif=loan.date_retour_effectif,
            statut=loan.statut,
            user=LoanUserSummary.model_validate(user) if user else None,
            book=LoanBookSummary.model_validate(book) if book else None,
        )


class ReconcileResult(BaseModel):
    """Résultat du passage des emprunts échus au statut OVERDUE."""

    loan_ids: list[str]
    total: int
    message: str


class RepairResult(BaseModel):
    """Résultat de la correction des compteurs d'exemplaires."""

    book_ids: list[str]
    total: int
    message: str
