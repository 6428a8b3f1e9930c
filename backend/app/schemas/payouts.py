"""Schemas for payout endpoints."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PayoutRequest(BaseModel):
    """Request a withdrawal; omit amount to withdraw the whole available balance."""

    amount: Optional[int] = Field(None, gt=0, description="Amount in cents")
    payout_method: Optional[str] = Field(None, max_length=50)  # "bank", "paypal", etc.
    payout_details: Optional[Dict[str, Any]] = None


class PayoutFailRequest(BaseModel):
    failure_reason: str = Field(..., min_length=1, max_length=1000)


class PayoutResponse(BaseModel):
    """Schema for a payout."""

    uuid: str
    creator_id: str
    amount: int
    status: str
    period_start: Optional[datetime]
    period_end: Optional[datetime]
    payout_method: Optional[str]
    processed_at: Optional[datetime]
    failure_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PayoutListResponse(BaseModel):
    payouts: List[PayoutResponse]
