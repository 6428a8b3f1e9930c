"""Admin router: payout processing and cache reconciliation."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.auth.dependencies import admin_required
from app.models.user import User
from app.schemas.payouts import PayoutFailRequest, PayoutResponse
from app.services.payouts import process_payout, complete_payout, fail_payout
from app.services.reconciliation import reconcile_cached_totals

router = APIRouter()


@router.post("/payouts/{payout_id}/process", response_model=PayoutResponse)
async def mark_payout_processing(
    payout_id: str,
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """Move a pending payout to processing. Admin only."""
    payout = await process_payout(db, payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/complete", response_model=PayoutResponse)
async def mark_payout_completed(
    payout_id: str,
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """Mark a processing payout as paid out. Admin only."""
    payout = await complete_payout(db, payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/fail", response_model=PayoutResponse)
async def mark_payout_failed(
    payout_id: str,
    fail_data: PayoutFailRequest,
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """Record a failed transfer and credit the amount back to the creator. Admin only."""
    payout = await fail_payout(db, payout_id, fail_data.failure_reason)
    return PayoutResponse.model_validate(payout)


@router.post("/reconcile")
async def reconcile(
    apply: bool = True,
    admin_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """Recompute cached revenue counters from the ledger. Admin only."""
    drifts = await reconcile_cached_totals(db, apply=apply)
    return {
        "drift_count": len(drifts),
        "applied": apply,
        "drifts": [drift.to_dict() for drift in drifts],
    }
