"""Schemas for checkout and order endpoints."""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field


class CartItemRequest(BaseModel):
    """One cart line. Prices are read from the catalog, not from here."""

    product_id: str
    quantity: int = Field(1, ge=1)
    amount_paid_per_unit: int = Field(0, ge=0, description="Cents; used for pay-what-you-want products only")
    answers: Dict[str, str] = Field(default_factory=dict)


class CheckoutRequest(BaseModel):
    """Multi-product cart checkout; split into one order per creator."""

    items: List[CartItemRequest] = Field(..., min_length=1, max_length=50)
    buyer_email: EmailStr
    buyer_name: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=2000)
    idempotency_key: Optional[str] = Field(
        None, max_length=200, description="Stable across retries of one submission; the Idempotency-Key header wins"
    )


class OrderItemResponse(BaseModel):
    uuid: str
    product_id: Optional[str]
    product_title: str
    product_price: int
    quantity: int
    amount_paid: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Order snapshot."""

    uuid: str
    creator_id: Optional[str]
    product_id: Optional[str]
    product_title: str
    product_price: int
    buyer_email: str
    buyer_name: Optional[str]
    quantity: int
    amount_paid: int
    checkout_group_id: str
    status: str
    email_sent: bool
    created_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class CheckoutResponse(BaseModel):
    checkout_group_id: str
    created: bool = Field(..., description="False when the idempotency key matched an earlier checkout")
    total_amount: int
    delivery_urls: List[str]
    orders: List[OrderResponse]
