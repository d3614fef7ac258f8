"""
Schemas Pydantic de l'application.
"""

from bibliotheque.schemas.base import (
    BaseSchema,
    ErrorResponse,
)
from bibliotheque.schemas.health import HealthResponse
from bibliotheque.schemas.user import (
    UserCreate,
    UserRead,
    UserUpdate,
)
from bibliotheque.schemas.book import (
    BookCreate,
    BookRead,
    BookUpdate,
)
from bibliotheque.schemas.loan import (
    DEFAULT_LOAN_DURATION_DAYS,
    MAX_LOAN_DURATION_DAYS,
    LoanBookSummary,
    LoanCreate,
    LoanDetail,
    LoanRead,
    LoanUserSummary,
    ReconcileResult,
    RepairResult,
)

__all__ = [
    # Base
    "BaseSchema",
    "ErrorResponse",
    # Health
    "HealthResponse",
    # User
    "UserCreate",
    "UserRead",
    "UserUpdate",
    # Book
    "BookCreate",
    "BookRead",
    "BookUpdate",
    # Loan
    "DEFAULT_LOAN_DURATION_DAYS",
    "MAX_LOAN_DURATION_DAYS",
    "LoanBookSummary",
    "LoanCreate",
    "LoanDetail",
    "LoanRead",
    "LoanUserSummary",
    "ReconcileResult",
    "RepairResult",
]
