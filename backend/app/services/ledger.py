"""Append-only access to the transaction ledger.

``LedgerStore`` is the only write path to ``transactions`` and deliberately
has no update or delete method. Writes join the caller's unit of work: the
row becomes durable when the caller commits.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import Transaction, TransactionType

logger = logging.getLogger(__name__)


class LedgerStore:
    """Append/query facade over the ``transactions`` table."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def append(self, transaction: Transaction) -> str:
        """
        Stage a new ledger entry and flush it.

        Returns the transaction id. Raises ValueError when the entry is
        malformed; the caller's unit of work decides whether it commits.
        """
        if transaction.type not in TransactionType.ALL:
            raise ValueError(f"Unknown transaction type: {transaction.type}")
        if transaction.net_amount is None:
            transaction.net_amount = transaction.amount - (transaction.platform_fee_amount or 0)
        if transaction.created_at is None:
            transaction.created_at = datetime.utcnow()
        if transaction.available_at is None:
            transaction.available_at = transaction.created_at

        self._db.add(transaction)
        await self._db.flush()

        logger.debug(
            f"[finance] staged {transaction.type} {transaction.uuid} "
            f"creator={transaction.creator_id} amount={transaction.amount}"
        )
        return transaction.uuid

    async def query(
        self,
        creator_id: str,
        *,
        types: Optional[Iterable[str]] = None,
        available_before: Optional[datetime] = None,
        order_id: Optional[str] = None,
        payout_id: Optional[str] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Transaction]:
        """Return the creator's transactions ordered by created_at."""
        stmt = select(Transaction).where(Transaction.creator_id == creator_id)

        if types:
            stmt = stmt.where(Transaction.type.in_(list(types)))
        if available_before is not None:
            stmt = stmt.where(Transaction.available_at <= available_before)
        if order_id is not None:
            stmt = stmt.where(Transaction.order_id == order_id)
        if payout_id is not None:
            stmt = stmt.where(Transaction.payout_id == payout_id)

        if newest_first:
            stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.uuid.desc())
        else:
            stmt = stmt.order_by(Transaction.created_at.asc(), Transaction.uuid.asc())

        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._db.execute(stmt)
        return list(result.scalars().all())
