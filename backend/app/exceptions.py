"""Typed errors raised by the ledger, order intake and payout services.

Routers never translate these by hand: ``main.py`` registers a single
exception handler that renders ``to_dict()`` with ``http_status``.
"""
from datetime import datetime
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    http_status = 400

    def __init__(self, message: str, code: str = "LEDGER_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(LedgerError):
    """Input rejected before any write (bad amount, unavailable product, missing field)."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidPayoutStateError(ValidationError):
    """Payout is not in a state that allows the requested transition."""

    def __init__(self, payout_id: str, status: str, action: str):
        super().__init__(
            f"Cannot {action} payout in status '{status}'",
            details={"payout_id": payout_id, "status": status, "action": action},
        )
        self.code = "INVALID_PAYOUT_STATE"


class InsufficientBalanceError(LedgerError):
    """Requested payout exceeds the available balance."""

    def __init__(self, creator_id: str, requested: int, available: int):
        super().__init__(
            f"Requested {requested} but only {available} available",
            code="INSUFFICIENT_BALANCE",
            details={"creator_id": creator_id, "requested": requested, "available": available},
        )


class PendingPayoutExistsError(LedgerError):
    """Creator already has a payout waiting to be processed."""

    http_status = 409

    def __init__(self, creator_id: str):
        super().__init__(
            "You already have a pending payout request",
            code="PENDING_PAYOUT_EXISTS",
            details={"creator_id": creator_id},
        )


class NotFoundError(LedgerError):
    """Referenced order, payout, product or creator does not exist."""

    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type.capitalize()} not found",
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConcurrencyConflictError(LedgerError):
    """A uniqueness constraint lost a race against a concurrent writer."""

    http_status = 409

    def __init__(self, constraint: str, key: Optional[str] = None):
        details = {"constraint": constraint}
        if key is not None:
            details["key"] = key
        super().__init__(
            f"Concurrent write conflict on {constraint}",
            code="CONCURRENCY_CONFLICT",
            details=details,
        )


class InternalPersistenceError(LedgerError):
    """Unexpected storage failure; the unit of work was rolled back."""

    http_status = 500

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"{operation} failed. Please retry.",
            code="INTERNAL_PERSISTENCE_ERROR",
            details={"operation": operation},
        )
        self.cause = cause


class LedgerImmutableError(LedgerError):
    """Attempt to update or delete a posted ledger transaction."""

    http_status = 500

    def __init__(self, transaction_id: str, action: str):
        super().__init__(
            f"Ledger transactions are append-only; refusing to {action} {transaction_id}",
            code="LEDGER_IMMUTABLE",
            details={"transaction_id": transaction_id, "action": action},
        )
