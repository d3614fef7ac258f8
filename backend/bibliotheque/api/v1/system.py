"""
Endpoints de maintenance.

Contrats:
    - POST /system/reconcile-overdue: Passe les emprunts échus en OVERDUE
    - POST /system/repair-copies: Recalcule les compteurs d'exemplaires

Destinés à une tâche planifiée ou à une intervention manuelle ; la
réconciliation est aussi faite à chaque lecture de /loans/overdue.
"""

from fastapi import APIRouter

from bibliotheque.core.deps import Loans
from bibliotheque.schemas.loan import ReconcileResult, RepairResult

router = APIRouter(prefix="/system", tags=["System"])


@router.post(
    "/reconcile-overdue",
    response_model=ReconcileResult,
    summary="Marquer les emprunts en retard",
)
async def reconcile_overdue(service: Loans) -> ReconcileResult:
    loans = await service.reconcile_overdue()
    return ReconcileResult(
        loan_ids=[loan.id for loan in loans],
        total=len(loans),
        message=f"{len(loans)} emprunt(s) passé(s) en retard",
    )


@router.post(
    "/repair-copies",
    response_model=RepairResult,
    summary="Corriger les compteurs d'exemplaires",
    description="Recalcule pour chaque livre les exemplaires en rayon à partir "
                "des emprunts en cours.",
)
async def repair_copies(service: Loans) -> RepairResult:
    book_ids = await service.repair_copy_counts()
    return RepairResult(
        book_ids=book_ids,
        total=len(book_ids),
        message=f"{len(book_ids)} livre(s) corrigé(s)",
    )
