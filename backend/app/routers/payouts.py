"""Creator payout router: request, list and cancel withdrawals."""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.database import get_db
from app.auth.dependencies import get_current_active_user
from app.models.user import User
from app.rate_limit import limiter
from app.schemas.payouts import PayoutRequest, PayoutResponse, PayoutListResponse
from app.services.payouts import request_payout, cancel_payout, list_payouts

router = APIRouter()


@router.get("/api/payouts", response_model=PayoutListResponse)
async def get_payouts(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List the creator's payouts, newest first."""
    payouts = await list_payouts(db, current_user.uuid)
    return PayoutListResponse(payouts=[PayoutResponse.model_validate(p) for p in payouts])


@router.post("/api/payouts", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.PAYOUT_RATE_LIMIT)
async def create_payout(
    request: Request,
    payout_data: PayoutRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Request a payout of available balance.

    - Fails with 400 INSUFFICIENT_BALANCE when the amount exceeds the available balance
    - Fails with 409 PENDING_PAYOUT_EXISTS while another request is pending
    """
    payout = await request_payout(
        db,
        current_user.uuid,
        amount=payout_data.amount,
        payout_method=payout_data.payout_method,
        payout_details=payout_data.payout_details,
    )
    return PayoutResponse.model_validate(payout)


@router.post("/api/payouts/{payout_id}/cancel", response_model=PayoutResponse)
async def cancel_pending_payout(
    payout_id: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a pending payout; the amount is credited back by a new ledger entry."""
    payout = await cancel_payout(db, current_user.uuid, payout_id)
    return PayoutResponse.model_validate(payout)
