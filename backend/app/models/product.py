"""Product model for the Kreasi storefront catalog."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class Product(Base):
    """Digital product sold from a creator profile. Prices are in cents."""

    __tablename__ = "products"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Owner
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.uuid"), nullable=False)

    # Product info
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    images: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Pricing
    pay_what_you_want: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sale_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_price: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Quantity limits; NULL means unlimited
    total_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    limit_per_checkout: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Custom checkout questions: [{"id", "label", "required"}]
    customer_questions: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Cached analytics counters (denormalized, not source of truth)
    sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Visibility
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator: Mapped["User"] = relationship("User", foreign_keys=[user_id])

    # Indexes
    __table_args__ = (
        Index("idx_product_user_id", "user_id"),
        Index("idx_product_is_active", "is_active"),
    )

    def effective_unit_price(self, amount_paid_per_unit: int) -> int:
        """Price charged per unit: buyer's amount for pay-what-you-want, else the lower of price/sale price."""
        if self.pay_what_you_want:
            return amount_paid_per_unit
        if self.sale_price and self.price and self.sale_price < self.price:
            return self.sale_price
        return self.price or 0

    def __repr__(self) -> str:
        return f"<Product(uuid={self.uuid}, title={self.title}, user_id={self.user_id})>"
