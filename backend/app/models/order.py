"""Order and order item models: immutable purchase snapshots."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Boolean, DateTime, Text, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class OrderStatus:
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class Order(Base):
    """One creator's share of a checkout.

    Product fields are snapshots taken at purchase time. ``creator_id`` and
    ``product_id`` are plain references so the order stays readable after the
    product or the creator account is gone.
    """

    __tablename__ = "orders"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Seller and product references (may dangle)
    creator_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Snapshot fields
    product_title: Mapped[str] = mapped_column(String(255), nullable=False)
    product_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_image: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Buyer information
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Amounts (cents)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    checkout_answers: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Links sibling orders created by one multi-creator checkout
    checkout_group_id: Mapped[str] = mapped_column(String(36), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    delivery_token: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, default=lambda: str(uuid4()))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.COMPLETED)

    # Email tracking
    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", lazy="selectin", order_by="OrderItem.created_at"
    )

    # Indexes
    __table_args__ = (
        Index("idx_order_creator_id", "creator_id"),
        Index("idx_order_product_id", "product_id"),
        Index("idx_order_buyer_email", "buyer_email"),
        Index("idx_order_checkout_group_id", "checkout_group_id"),
        Index("idx_order_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Order(uuid={self.uuid}, creator_id={self.creator_id}, amount_paid={self.amount_paid})>"


class OrderItem(Base):
    """Line item snapshot; one per product in a creator's order."""

    __tablename__ = "order_items"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.uuid"), nullable=False)
    creator_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    product_title: Mapped[str] = mapped_column(String(255), nullable=False)
    product_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkout_answers: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        Index("idx_order_item_order_id", "order_id"),
        Index("idx_order_item_creator_id", "creator_id"),
        Index("idx_order_item_product_id", "product_id"),
    )

    def __repr__(self) -> str:
        return f"<OrderItem(uuid={self.uuid}, order_id={self.order_id}, product_id={self.product_id})>"
