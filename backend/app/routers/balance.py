"""Balance summary and transaction history router."""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.auth.dependencies import get_current_active_user
from app.models.user import User
from app.schemas.balance import BalanceSummaryResponse, TransactionResponse, TransactionListResponse
from app.services.balance import compute_summary, list_transactions, count_transactions

router = APIRouter()


@router.get("/api/balance/summary", response_model=BalanceSummaryResponse)
async def get_balance_summary(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the creator's balances, computed from the ledger at request time."""
    summary = await compute_summary(db, current_user.uuid)
    return BalanceSummaryResponse(**summary.to_dict())


@router.get("/api/balance/transactions", response_model=TransactionListResponse)
async def get_transactions(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    type: Optional[str] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get ledger history for the creator (paginated, newest first).
    """
    transactions = await list_transactions(
        db, current_user.uuid, limit=limit, offset=offset, transaction_type=type
    )
    total = await count_transactions(db, current_user.uuid, transaction_type=type)

    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        limit=limit,
        offset=offset,
    )
