"""Ledger transaction model: the append-only source of truth for creator balances."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Float, DateTime, Text, Index, JSON, event
from sqlalchemy.orm import Mapped, mapped_column, object_session
from app.database import Base
from app.exceptions import LedgerImmutableError


class TransactionType:
    SALE = "sale"
    PAYOUT = "payout"
    FEE = "fee"
    ADJUSTMENT = "adjustment"

    ALL = (SALE, PAYOUT, FEE, ADJUSTMENT)


class Transaction(Base):
    """Immutable ledger entry.

    All amounts are signed integers in cents: positive credits the creator,
    negative debits. ``net_amount`` is what the creator actually keeps after
    the platform fee and is what balances are summed over.
    """

    __tablename__ = "transactions"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Owner and links, without FKs: the ledger must stay readable after a creator is deleted
    creator_id: Mapped[str] = mapped_column(String(36), nullable=False)
    order_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    payout_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Entry
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    net_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    platform_fee_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    # Funds count towards the available balance once available_at <= now
    available_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_transaction_creator_id", "creator_id"),
        Index("idx_transaction_order_id", "order_id"),
        Index("idx_transaction_payout_id", "payout_id"),
        Index("idx_transaction_type", "type"),
        Index("idx_transaction_available_at", "available_at"),
        Index("idx_transaction_creator_created", "creator_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Transaction(uuid={self.uuid}, creator_id={self.creator_id}, type={self.type}, amount={self.amount})>"


@event.listens_for(Transaction, "before_update")
def _reject_update(mapper, connection, target):
    session = object_session(target)
    if session is None or session.is_modified(target, include_collections=False):
        raise LedgerImmutableError(target.uuid, "update")


@event.listens_for(Transaction, "before_delete")
def _reject_delete(mapper, connection, target):
    raise LedgerImmutableError(target.uuid, "delete")
