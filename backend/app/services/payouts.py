"""Payout state machine.

    pending -> processing -> completed
                          -> failed      (compensating credit)
    pending -> cancelled                 (compensating credit)

The debit is posted together with the pending payout, so the available
balance drops as soon as the request is accepted. Reversals never touch that
debit; they append an ADJUSTMENT credit. One pending payout per creator is
guaranteed by the partial unique index on payouts, not by the pre-check here.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.database import unit_of_work
from app.exceptions import (
    InsufficientBalanceError,
    InvalidPayoutStateError,
    NotFoundError,
    PendingPayoutExistsError,
    ValidationError,
)
from app.models.payout import Payout, PayoutStatus
from app.models.transaction import Transaction, TransactionType
from app.models.user import User
from app.services.balance import get_available_balance
from app.services.ledger import LedgerStore

logger = logging.getLogger(__name__)


async def _lock_creator(db: AsyncSession, creator_id: str) -> User:
    # Serialises payout requests per creator on PostgreSQL; SQLite ignores FOR UPDATE
    result = await db.execute(
        select(User).where(User.uuid == creator_id).with_for_update()
    )
    creator = result.scalar_one_or_none()
    if creator is None:
        raise NotFoundError("creator", creator_id)
    return creator


async def find_pending_payout(db: AsyncSession, creator_id: str) -> Optional[Payout]:
    result = await db.execute(
        select(Payout).where(
            Payout.creator_id == creator_id,
            Payout.status == PayoutStatus.PENDING,
        )
    )
    return result.scalar_one_or_none()


async def _last_period_end(db: AsyncSession, creator_id: str) -> Optional[datetime]:
    result = await db.execute(
        select(Payout.period_end)
        .where(
            Payout.creator_id == creator_id,
            Payout.status.in_([PayoutStatus.PENDING, PayoutStatus.PROCESSING, PayoutStatus.COMPLETED]),
        )
        .order_by(Payout.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_payout(db: AsyncSession, payout_id: str, creator_id: Optional[str] = None, lock: bool = False) -> Payout:
    """Fetch a payout fresh from the database; a creator mismatch reads as not found."""
    stmt = select(Payout).where(Payout.uuid == payout_id).execution_options(populate_existing=True)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    payout = result.scalar_one_or_none()
    if payout is None or (creator_id is not None and payout.creator_id != creator_id):
        raise NotFoundError("payout", payout_id)
    return payout


async def request_payout(
    db: AsyncSession,
    creator_id: str,
    amount: Optional[int] = None,
    payout_method: Optional[str] = None,
    payout_details: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Payout:
    """
    Request a withdrawal of available funds.

    ``amount=None`` withdraws the whole available balance. All checks and
    both inserts (payout + debit) run in one unit of work.

    Raises:
        ValidationError: non-positive amount or nothing available.
        InsufficientBalanceError: amount above the available balance.
        PendingPayoutExistsError: another payout is still pending, whether
            seen by the pre-check or by the unique index at insert time.
        NotFoundError: unknown creator.
    """
    now = now or datetime.utcnow()

    if amount is not None and amount <= 0:
        raise ValidationError("Payout amount must be positive", field="amount")

    try:
        async with unit_of_work(db, "Payout request"):
            await _lock_creator(db, creator_id)

            if await find_pending_payout(db, creator_id) is not None:
                raise PendingPayoutExistsError(creator_id)

            available = await get_available_balance(db, creator_id, now)
            payout_amount = amount if amount is not None else available

            if payout_amount <= 0:
                raise ValidationError("No available balance for payout", field="amount")
            if payout_amount > available:
                raise InsufficientBalanceError(creator_id, payout_amount, available)

            payout = Payout(
                uuid=str(uuid4()),
                creator_id=creator_id,
                amount=payout_amount,
                status=PayoutStatus.PENDING,
                period_start=await _last_period_end(db, creator_id),
                period_end=now,
                payout_method=payout_method,
                payout_details=payout_details,
                created_at=now,
                updated_at=now,
            )
            db.add(payout)
            await db.flush()

            await LedgerStore(db).append(
                Transaction(
                    uuid=str(uuid4()),
                    creator_id=creator_id,
                    payout_id=payout.uuid,
                    type=TransactionType.PAYOUT,
                    amount=-payout_amount,
                    net_amount=-payout_amount,
                    platform_fee_percent=0.0,
                    platform_fee_amount=0,
                    description=f"Payout request #{payout.uuid[:8]}",
                    details={"payout_id": payout.uuid, "payout_method": payout_method},
                    available_at=now,
                    created_at=now,
                )
            )
    except IntegrityError as e:
        logger.info(f"[finance] pending payout constraint rejected request for creator {creator_id}: {e.orig}")
        raise PendingPayoutExistsError(creator_id) from e
    except (PendingPayoutExistsError, InsufficientBalanceError, ValidationError) as e:
        logger.info(f"[finance] payout request rejected for creator {creator_id}: {e.message}")
        raise

    logger.info(f"[finance] payout {payout.uuid} requested by creator {creator_id} amount={payout_amount}")
    return payout


async def _transition(
    db: AsyncSession,
    payout: Payout,
    from_statuses: Iterable[str],
    to_status: str,
    action: str,
    now: datetime,
    **values,
) -> None:
    """Conditional status update; zero rows means a concurrent transition won."""
    from_statuses = list(from_statuses)
    if payout.status not in from_statuses:
        raise InvalidPayoutStateError(payout.uuid, payout.status, action)

    result = await db.execute(
        update(Payout)
        .where(Payout.uuid == payout.uuid, Payout.status.in_(from_statuses))
        .values(status=to_status, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await get_payout(db, payout.uuid)
        raise InvalidPayoutStateError(payout.uuid, current.status, action)

    # Mirror the UPDATE on the loaded instance without scheduling another one
    set_committed_value(payout, "status", to_status)
    set_committed_value(payout, "updated_at", now)
    for key, value in values.items():
        set_committed_value(payout, key, value)


async def _post_reversal(db: AsyncSession, payout: Payout, reason: str, now: datetime) -> None:
    await LedgerStore(db).append(
        Transaction(
            uuid=str(uuid4()),
            creator_id=payout.creator_id,
            payout_id=payout.uuid,
            type=TransactionType.ADJUSTMENT,
            amount=payout.amount,
            net_amount=payout.amount,
            platform_fee_percent=0.0,
            platform_fee_amount=0,
            description=f"Payout {reason}: #{payout.uuid[:8]}",
            details={f"{reason}_payout_id": payout.uuid},
            available_at=now,
            created_at=now,
        )
    )


async def cancel_payout(db: AsyncSession, creator_id: str, payout_id: str, now: Optional[datetime] = None) -> Payout:
    """Cancel a pending payout and credit its amount back."""
    now = now or datetime.utcnow()

    async with unit_of_work(db, "Payout cancel"):
        payout = await get_payout(db, payout_id, creator_id=creator_id, lock=True)
        await _transition(db, payout, [PayoutStatus.PENDING], PayoutStatus.CANCELLED, "cancel", now)
        await _post_reversal(db, payout, "cancelled", now)

    logger.info(f"[finance] payout {payout_id} cancelled by creator {creator_id}, {payout.amount} credited back")
    return payout


async def process_payout(db: AsyncSession, payout_id: str, now: Optional[datetime] = None) -> Payout:
    """Administrative: hand a pending payout to the payment provider."""
    now = now or datetime.utcnow()

    async with unit_of_work(db, "Payout processing"):
        payout = await get_payout(db, payout_id, lock=True)
        await _transition(db, payout, [PayoutStatus.PENDING], PayoutStatus.PROCESSING, "process", now)

    logger.info(f"[finance] payout {payout_id} processing")
    return payout


async def complete_payout(db: AsyncSession, payout_id: str, now: Optional[datetime] = None) -> Payout:
    """Administrative: funds have left the platform. No ledger entry; the debit already exists."""
    now = now or datetime.utcnow()

    async with unit_of_work(db, "Payout completion"):
        payout = await get_payout(db, payout_id, lock=True)
        await _transition(
            db, payout, [PayoutStatus.PROCESSING], PayoutStatus.COMPLETED, "complete", now, processed_at=now
        )

    logger.info(f"[finance] payout {payout_id} completed")
    return payout


async def fail_payout(db: AsyncSession, payout_id: str, failure_reason: str, now: Optional[datetime] = None) -> Payout:
    """Administrative: the transfer failed; record why and credit the amount back."""
    now = now or datetime.utcnow()
    if not failure_reason or not failure_reason.strip():
        raise ValidationError("A failure reason is required", field="failure_reason")

    async with unit_of_work(db, "Payout failure"):
        payout = await get_payout(db, payout_id, lock=True)
        await _transition(
            db,
            payout,
            [PayoutStatus.PENDING, PayoutStatus.PROCESSING],
            PayoutStatus.FAILED,
            "fail",
            now,
            processed_at=now,
            failure_reason=failure_reason.strip(),
        )
        await _post_reversal(db, payout, "failed", now)

    logger.warning(f"[finance] payout {payout_id} failed: {failure_reason}")
    return payout


async def list_payouts(db: AsyncSession, creator_id: str) -> List[Payout]:
    """All payouts of a creator, newest first."""
    result = await db.execute(
        select(Payout)
        .where(Payout.creator_id == creator_id)
        .order_by(Payout.created_at.desc(), Payout.uuid.desc())
    )
    return list(result.scalars().all())
