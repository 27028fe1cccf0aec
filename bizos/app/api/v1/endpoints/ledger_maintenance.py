"""
Ledger Maintenance API Endpoints.

Each endpoint runs one maintenance task under the maintenance lock. A run
that finds the lock taken answers 409.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from bizos.app.db.session import get_db
from bizos.app.core.guards import require_capability
from bizos.app.core.policy import Capability
from bizos.app.domain.ledger.reconciliation import run_ledger_maintenance
from bizos.app.schemas.finance import MaintenanceResponse

router = APIRouter(prefix="/finance/maintenance", tags=["Ledger Maintenance"])


async def _run(task: str, db: AsyncSession, current_user: dict) -> MaintenanceResponse:
    results = await run_ledger_maintenance(
        db,
        tasks=(task,),
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub")
    )
    return MaintenanceResponse(task=task, result=results[task])


@router.post("/reconcile", response_model=MaintenanceResponse)
async def reconcile_balances(
    current_user: dict = Depends(require_capability(Capability.FINANCE_MAINTAIN)),
    db: AsyncSession = Depends(get_db)
):
    """Recompute every cached account balance from ledger entries."""
    return await _run("reconcile", db, current_user)


@router.post("/repair-unbalanced", response_model=MaintenanceResponse)
async def repair_unbalanced(
    current_user: dict = Depends(require_capability(Capability.FINANCE_MAINTAIN)),
    db: AsyncSession = Depends(get_db)
):
    """Balance every unbalanced transaction against the Suspense account."""
    return await _run("repair", db, current_user)


@router.post("/normalize-negative", response_model=MaintenanceResponse)
async def normalize_negative(
    current_user: dict = Depends(require_capability(Capability.FINANCE_MAINTAIN)),
    db: AsyncSession = Depends(get_db)
):
    """Rewrite negative ledger amounts as positive amounts on the opposite side."""
    return await _run("normalize", db, current_user)
