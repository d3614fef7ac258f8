"""
Dependencies FastAPI partagées par les endpoints.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bibliotheque.core.config import Settings, get_settings
from bibliotheque.core.idempotency import IdempotencyStore
from bibliotheque.db.session import get_db
from bibliotheque.services.loan import LoanService


def get_idempotency_store(request: Request) -> IdempotencyStore:
    """
    Dependency qui fournit le stockage des clés d'idempotence.

    Créé par le lifespan ; sans lui (Redis absent), un stockage désactivé
    est retourné et l'en-tête Idempotency-Key est ignoré.
    """
    store = getattr(request.app.state, "idempotency", None)
    if store is None:
        return IdempotencyStore(None, enabled=False)
    return store


def get_loan_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoanService:
    """Dependency qui construit le service d'emprunts avec la durée configurée."""
    return LoanService(
        db,
        loan_duration_days=settings.LOAN_DURATION_DAYS,
        max_loan_duration_days=settings.MAX_LOAN_DURATION_DAYS,
    )


# Alias de types pour les endpoints
DbSession = Annotated[AsyncSession, Depends(get_db)]
Idempotency = Annotated[IdempotencyStore, Depends(get_idempotency_store)]
Loans = Annotated[LoanService, Depends(get_loan_service)]
