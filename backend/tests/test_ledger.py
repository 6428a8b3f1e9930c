"""Tests for the append-only transaction ledger."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.exceptions import LedgerImmutableError
from app.models.transaction import Transaction, TransactionType
from app.services.ledger import LedgerStore


NOW = datetime(2026, 3, 1, 12, 0, 0)


def _entry(creator_id, type_=TransactionType.SALE, amount=1000, **fields):
    return Transaction(creator_id=creator_id, type=type_, amount=amount, **fields)


@pytest.mark.asyncio
async def test_append_defaults_net_and_availability(test_db, creator):
    """Net falls back to amount minus fee; available_at falls back to created_at."""
    ledger = LedgerStore(test_db)
    tx_id = await ledger.append(
        _entry(creator.uuid, amount=10000, platform_fee_amount=500, created_at=NOW)
    )
    await test_db.commit()

    tx = await test_db.get(Transaction, tx_id)
    assert tx.net_amount == 9500
    assert tx.available_at == NOW


@pytest.mark.asyncio
async def test_append_rejects_unknown_type(test_db, creator):
    with pytest.raises(ValueError):
        await LedgerStore(test_db).append(_entry(creator.uuid, type_="refund"))


@pytest.mark.asyncio
async def test_query_orders_by_created_at(test_db, creator):
    """Entries come back oldest first, or newest first on request."""
    ledger = LedgerStore(test_db)
    second = await ledger.append(_entry(creator.uuid, amount=200, created_at=NOW + timedelta(hours=1)))
    first = await ledger.append(_entry(creator.uuid, amount=100, created_at=NOW))
    third = await ledger.append(
        _entry(creator.uuid, type_=TransactionType.PAYOUT, amount=-50, created_at=NOW + timedelta(hours=2))
    )
    await test_db.commit()

    oldest_first = await ledger.query(creator.uuid)
    assert [t.uuid for t in oldest_first] == [first, second, third]

    newest_first = await ledger.query(creator.uuid, newest_first=True)
    assert [t.uuid for t in newest_first] == [third, second, first]


@pytest.mark.asyncio
async def test_query_filters(test_db, make_creator):
    """Type, availability and creator filters are applied in SQL."""
    alice = await make_creator()
    bob = await make_creator()
    ledger = LedgerStore(test_db)

    await ledger.append(_entry(alice.uuid, amount=100, created_at=NOW, available_at=NOW + timedelta(days=7)))
    await ledger.append(_entry(alice.uuid, type_=TransactionType.PAYOUT, amount=-40, created_at=NOW))
    await ledger.append(_entry(bob.uuid, amount=999, created_at=NOW))
    await test_db.commit()

    payouts = await ledger.query(alice.uuid, types=[TransactionType.PAYOUT])
    assert [t.amount for t in payouts] == [-40]

    available = await ledger.query(alice.uuid, available_before=NOW)
    assert [t.amount for t in available] == [-40]

    assert len(await ledger.query(alice.uuid)) == 2
    assert len(await ledger.query(bob.uuid)) == 1


@pytest.mark.asyncio
async def test_query_pagination(test_db, creator):
    ledger = LedgerStore(test_db)
    for i in range(5):
        await ledger.append(_entry(creator.uuid, amount=i + 1, created_at=NOW + timedelta(minutes=i)))
    await test_db.commit()

    page = await ledger.query(creator.uuid, newest_first=True, limit=2, offset=1)
    assert [t.amount for t in page] == [4, 3]


def test_store_has_no_mutation_methods():
    """The store exposes append and query only."""
    for name in ("update", "delete", "remove", "edit"):
        assert not hasattr(LedgerStore, name)


@pytest.mark.asyncio
async def test_posted_transaction_cannot_be_updated(test_db, creator):
    """Changing a flushed ledger row is refused at flush time."""
    tx_id = await LedgerStore(test_db).append(_entry(creator.uuid, amount=1000, created_at=NOW))
    await test_db.commit()

    tx = await test_db.get(Transaction, tx_id)
    tx.amount = 1
    with pytest.raises(LedgerImmutableError):
        await test_db.flush()
    await test_db.rollback()

    result = await test_db.execute(select(Transaction.amount).where(Transaction.uuid == tx_id))
    assert result.scalar_one() == 1000


@pytest.mark.asyncio
async def test_posted_transaction_cannot_be_deleted(test_db, creator):
    tx_id = await LedgerStore(test_db).append(_entry(creator.uuid, amount=1000, created_at=NOW))
    await test_db.commit()

    tx = await test_db.get(Transaction, tx_id)
    await test_db.delete(tx)
    with pytest.raises(LedgerImmutableError):
        await test_db.flush()
    await test_db.rollback()

    result = await test_db.execute(select(Transaction).where(Transaction.uuid == tx_id))
    assert result.scalar_one_or_none() is not None
