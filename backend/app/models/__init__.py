"""Database models for the Kreasi commerce ledger."""
from app.models.user import User
from app.models.product import Product
from app.models.order import Order, OrderItem, OrderStatus
from app.models.transaction import Transaction, TransactionType
from app.models.payout import Payout, PayoutStatus

__all__ = [
    "User",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Transaction",
    "TransactionType",
    "Payout",
    "PayoutStatus",
]
