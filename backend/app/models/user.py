"""User (creator) model for the Kreasi commerce ledger."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class User(Base):
    """Creator account as seen by the ledger: identity, fee and hold configuration, cached totals."""

    __tablename__ = "users"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # User info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)

    # Account info
    status: Mapped[str] = mapped_column(String(50), default="active")
    user_role: Mapped[str] = mapped_column(String(50), default="user")

    # Per-creator ledger policy; NULL falls back to settings
    platform_fee_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    hold_period_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Cached analytics counters (denormalized, not source of truth)
    total_revenue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # in cents
    total_sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_user_email", "email"),
        Index("idx_user_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<User(uuid={self.uuid}, email={self.email}, name={self.name})>"
