"""
Modèles SQLAlchemy de l'application.

Tous les modèles sont importés ici pour être enregistrés dans Base.metadata.
"""

from bibliotheque.models.enums import LoanStatus, OPEN_LOAN_STATUSES
from bibliotheque.models.user import User
from bibliotheque.models.book import Book
from bibliotheque.models.loan import Loan

__all__ = [
    "LoanStatus",
    "OPEN_LOAN_STATUSES",
    "User",
    "Book",
    "Loan",
]
