"""Balance calculation over the transaction ledger.

Balances are never stored. Every figure here is an aggregation of
``transactions.net_amount`` at read time, split by ``available_at``; cached
counters on users/products are never consulted.
"""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ValidationError
from app.models.transaction import Transaction, TransactionType
from app.models.user import User
from app.services.hold_period import hold_period_days
from app.services.ledger import LedgerStore


@dataclass
class BalanceSummary:
    creator_id: str
    available_balance: int
    pending_balance: int
    total_earnings: int
    hold_period_days: int
    total_sales: int = 0
    total_payouts: int = 0
    total_fees: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _sum_where(condition):
    return func.coalesce(func.sum(case((condition, Transaction.net_amount), else_=0)), 0)


async def compute_summary(
    db: AsyncSession,
    creator_id: str,
    now: Optional[datetime] = None,
) -> BalanceSummary:
    """
    Aggregate the creator's ledger into available / pending / total figures.

    available + pending == total_earnings holds by construction: both sides
    partition the same rows on ``available_at <= now``.
    """
    now = now or datetime.utcnow()

    result = await db.execute(
        select(
            func.coalesce(func.sum(Transaction.net_amount), 0).label("total"),
            _sum_where(Transaction.available_at <= now).label("available"),
            _sum_where(Transaction.type == TransactionType.SALE).label("sales"),
            _sum_where(Transaction.type == TransactionType.PAYOUT).label("payouts"),
            _sum_where(Transaction.type == TransactionType.FEE).label("fees"),
        ).where(Transaction.creator_id == creator_id)
    )
    row = result.one()
    total = int(row.total)
    available = int(row.available)

    creator = await db.get(User, creator_id)

    return BalanceSummary(
        creator_id=creator_id,
        available_balance=available,
        pending_balance=total - available,
        total_earnings=total,
        hold_period_days=hold_period_days(creator),
        total_sales=int(row.sales),
        total_payouts=abs(int(row.payouts)),
        total_fees=abs(int(row.fees)),
    )


async def get_available_balance(db: AsyncSession, creator_id: str, now: Optional[datetime] = None) -> int:
    """Withdrawable amount right now, computed fresh from the ledger."""
    now = now or datetime.utcnow()
    result = await db.execute(
        select(func.coalesce(func.sum(Transaction.net_amount), 0)).where(
            Transaction.creator_id == creator_id,
            Transaction.available_at <= now,
        )
    )
    return int(result.scalar_one())


async def list_transactions(
    db: AsyncSession,
    creator_id: str,
    limit: int = 50,
    offset: int = 0,
    transaction_type: Optional[str] = None,
) -> List[Transaction]:
    """Transaction history for a creator, newest first."""
    if limit < 1 or limit > settings.TRANSACTIONS_PAGE_MAX:
        raise ValidationError(
            f"limit must be between 1 and {settings.TRANSACTIONS_PAGE_MAX}", field="limit"
        )
    if offset < 0:
        raise ValidationError("offset must not be negative", field="offset")
    if transaction_type is not None and transaction_type not in TransactionType.ALL:
        raise ValidationError(f"Unknown transaction type: {transaction_type}", field="type")

    return await LedgerStore(db).query(
        creator_id,
        types=[transaction_type] if transaction_type else None,
        newest_first=True,
        limit=limit,
        offset=offset,
    )


async def count_transactions(db: AsyncSession, creator_id: str, transaction_type: Optional[str] = None) -> int:
    stmt = select(func.count(Transaction.uuid)).where(Transaction.creator_id == creator_id)
    if transaction_type:
        stmt = stmt.where(Transaction.type == transaction_type)
    result = await db.execute(stmt)
    return int(result.scalar_one())
