"""Drift detection and repair for cached revenue counters.

users.total_revenue / total_sales_count and products.total_revenue /
sales_count are display caches bumped at checkout. They are recomputed here
from the ledger (creator revenue) and order items (sales counts, product
revenue); on any disagreement the cache is overwritten.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Dict, List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import unit_of_work
from app.models.order import OrderItem
from app.models.product import Product
from app.models.transaction import Transaction, TransactionType
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class CacheDrift:
    entity: str  # "creator" or "product"
    entity_id: str
    field: str
    cached: int
    expected: int

    def to_dict(self) -> dict:
        return asdict(self)


async def _grouped_sums(db: AsyncSession, key, value, *conditions) -> Dict[str, int]:
    stmt = select(key, func.coalesce(func.sum(value), 0)).group_by(key)
    if conditions:
        stmt = stmt.where(*conditions)
    result = await db.execute(stmt)
    return {row[0]: int(row[1]) for row in result.all() if row[0] is not None}


async def find_cache_drift(db: AsyncSession) -> List[CacheDrift]:
    """Compare every cached counter with its ledger/order-backed value."""
    drifts: List[CacheDrift] = []

    creator_revenue = await _grouped_sums(
        db, Transaction.creator_id, Transaction.net_amount, Transaction.type == TransactionType.SALE
    )
    creator_sales = await _grouped_sums(db, OrderItem.creator_id, OrderItem.quantity)
    product_revenue = await _grouped_sums(db, OrderItem.product_id, OrderItem.amount_paid)
    product_sales = await _grouped_sums(db, OrderItem.product_id, OrderItem.quantity)

    creators = await db.execute(select(User.uuid, User.total_revenue, User.total_sales_count))
    for uuid, cached_revenue, cached_sales in creators.all():
        expected_revenue = creator_revenue.get(uuid, 0)
        if (cached_revenue or 0) != expected_revenue:
            drifts.append(CacheDrift("creator", uuid, "total_revenue", cached_revenue or 0, expected_revenue))
        expected_sales = creator_sales.get(uuid, 0)
        if (cached_sales or 0) != expected_sales:
            drifts.append(CacheDrift("creator", uuid, "total_sales_count", cached_sales or 0, expected_sales))

    products = await db.execute(select(Product.uuid, Product.total_revenue, Product.sales_count))
    for uuid, cached_revenue, cached_sales in products.all():
        expected_revenue = product_revenue.get(uuid, 0)
        if (cached_revenue or 0) != expected_revenue:
            drifts.append(CacheDrift("product", uuid, "total_revenue", cached_revenue or 0, expected_revenue))
        expected_sales = product_sales.get(uuid, 0)
        if (cached_sales or 0) != expected_sales:
            drifts.append(CacheDrift("product", uuid, "sales_count", cached_sales or 0, expected_sales))

    return drifts


async def reconcile_cached_totals(db: AsyncSession, apply: bool = True) -> List[CacheDrift]:
    """
    Find drifted counters and, when ``apply`` is set, overwrite them.

    Returns the drift found before any repair. The ledger itself is never
    written.
    """
    drifts = await find_cache_drift(db)
    if not drifts:
        logger.info("[reconcile] ok: no financial drift detected")
        return drifts

    for drift in drifts[:20]:
        logger.warning(
            f"[reconcile] {drift.entity} {drift.entity_id} {drift.field}: "
            f"cached={drift.cached} expected={drift.expected}"
        )

    if apply:
        async with unit_of_work(db, "Cache reconciliation"):
            for drift in drifts:
                model = User if drift.entity == "creator" else Product
                await db.execute(
                    update(model)
                    .where(model.uuid == drift.entity_id)
                    .values({drift.field: drift.expected})
                )
        logger.info(f"[reconcile] repaired {len(drifts)} cached counter(s)")

    return drifts
