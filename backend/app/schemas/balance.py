"""Schemas for balance and transaction endpoints."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class TransactionResponse(BaseModel):
    """Schema for a single ledger transaction. Amounts in cents."""

    uuid: str
    creator_id: str
    order_id: Optional[str]
    payout_id: Optional[str]
    type: str
    amount: int
    net_amount: int
    platform_fee_percent: float
    platform_fee_amount: int
    description: Optional[str]
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="details")
    available_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class TransactionListResponse(BaseModel):
    """Schema for a page of transaction history, newest first."""

    transactions: List[TransactionResponse]
    total: int
    limit: int
    offset: int


class BalanceSummaryResponse(BaseModel):
    """Balance computed from the ledger at request time. Amounts in cents."""

    creator_id: str
    available_balance: int = Field(..., description="Withdrawable now")
    pending_balance: int = Field(..., description="Still inside the hold period")
    total_earnings: int = Field(..., description="available + pending")
    hold_period_days: int
    total_sales: int = 0
    total_payouts: int = 0
    total_fees: int = 0
