"""Payout model: creator withdrawal requests."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, DateTime, Text, Index, JSON, text
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class PayoutStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Name of the partial unique index guarding one pending payout per creator
ONE_PENDING_PER_CREATOR = "uq_payout_one_pending_per_creator"


class Payout(Base):
    """Withdrawal request.

    pending -> processing -> completed | failed, or pending -> cancelled.
    The debit transaction is posted when the request is created; cancel and
    fail post a compensating adjustment instead of touching that debit.
    """

    __tablename__ = "payouts"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    creator_id: Mapped[str] = mapped_column(String(36), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # cents, always positive
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PayoutStatus.PENDING)

    # Earnings period covered by this payout
    period_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    period_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    payout_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payout_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_payout_creator_id", "creator_id"),
        Index("idx_payout_status", "status"),
        Index(
            ONE_PENDING_PER_CREATOR,
            "creator_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Payout(uuid={self.uuid}, creator_id={self.creator_id}, amount={self.amount}, status={self.status})>"
