"""Order intake: validate a cart, snapshot it into orders and post sale credits.

Flow: idempotency lookup -> validate cart against the catalog -> one unit of
work writing orders, order items, one SALE transaction per creator and the
advisory cached counters -> commit -> best-effort notification hooks.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import unit_of_work
from app.exceptions import ValidationError, ConcurrencyConflictError
from app.models.order import Order, OrderItem, OrderStatus
from app.models.product import Product
from app.models.transaction import Transaction, TransactionType
from app.models.user import User
from app.services.catalog import (
    get_creators,
    get_products_for_checkout,
    parse_customer_questions,
    platform_fee_percent_for,
)
from app.services.hold_period import compute_available_at
from app.services.ledger import LedgerStore
from app.services.notifications import notify_order_created

logger = logging.getLogger(__name__)

# Sibling orders store "<key>:<creator uuid>", which must still fit the column
MAX_IDEMPOTENCY_KEY_LENGTH = 200


@dataclass
class CartItem:
    product_id: str
    quantity: int = 1
    # Only honoured for pay-what-you-want products
    amount_paid_per_unit: int = 0
    answers: Dict[str, str] = field(default_factory=dict)


@dataclass
class BuyerInfo:
    email: str
    name: Optional[str] = None
    note: Optional[str] = None


@dataclass
class CheckoutResult:
    checkout_group_id: str
    orders: List[Order]
    created: bool

    @property
    def total_amount(self) -> int:
        return sum(order.amount_paid for order in self.orders)

    @property
    def delivery_urls(self) -> List[str]:
        return [delivery_url(order) for order in self.orders]


@dataclass
class _PricedItem:
    product: Product
    quantity: int
    unit_price: int
    total: int
    answers: Dict[str, str]


def delivery_url(order: Order) -> str:
    return f"{settings.BASE_URL}/d/{order.delivery_token}"


def calculate_fee(amount: int, fee_percent: float) -> tuple[int, int]:
    """Split a gross amount into (platform fee, creator net), rounding the fee half up."""
    fee = int((Decimal(amount) * Decimal(str(fee_percent)) / Decimal(100)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    ))
    return fee, amount - fee


async def find_checkout_by_key(db: AsyncSession, idempotency_key: str) -> Optional[CheckoutResult]:
    """Existing checkout group whose primary order carries this key, if any."""
    result = await db.execute(
        select(Order.checkout_group_id).where(Order.idempotency_key == idempotency_key)
    )
    group_id = result.scalar_one_or_none()
    if group_id is None:
        return None

    orders = await get_checkout_group(db, group_id)
    # Primary order first, the same position it had when the checkout was created
    orders.sort(key=lambda order: order.idempotency_key != idempotency_key)
    return CheckoutResult(checkout_group_id=group_id, orders=orders, created=False)


async def get_checkout_group(db: AsyncSession, checkout_group_id: str) -> List[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.checkout_group_id == checkout_group_id)
        .order_by(Order.created_at.asc(), Order.uuid.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def _validate_request(items: Sequence[CartItem], buyer: BuyerInfo, idempotency_key: str) -> None:
    if not idempotency_key or not idempotency_key.strip():
        raise ValidationError("Idempotency key is required", field="idempotency_key")
    if len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"Idempotency key must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
            field="idempotency_key",
        )
    if not items:
        raise ValidationError("No items in cart", field="items")
    if not buyer.email or "@" not in buyer.email:
        raise ValidationError("A valid buyer email is required", field="buyer_email")


def _price_cart(items: Sequence[CartItem], products: Dict[str, Product]) -> Dict[str, List[_PricedItem]]:
    """
    Validate every cart line against the current catalog and group by creator.

    Prices come from the catalog; the buyer's per-unit amount is used only for
    pay-what-you-want products and must reach the minimum price.
    """
    requested: Dict[str, int] = {}
    for item in items:
        if item.quantity < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity")
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ValidationError(
                "One or more products in your cart no longer exist",
                details={"product_id": product_id},
            )
        if not product.is_active:
            raise ValidationError(f"{product.title} is no longer available", details={"product_id": product_id})
        if product.total_quantity is not None and product.total_quantity < quantity:
            raise ValidationError(
                f"Product {product.title} sold out or not enough stock",
                details={"product_id": product_id, "available": product.total_quantity},
            )
        if product.limit_per_checkout is not None and quantity > product.limit_per_checkout:
            raise ValidationError(
                f"Product {product.title} exceeds per-checkout limit",
                details={"product_id": product_id, "limit": product.limit_per_checkout},
            )

    by_creator: Dict[str, List[_PricedItem]] = {}
    for item in items:
        product = products[item.product_id]

        for question in parse_customer_questions(product.customer_questions):
            answer = (item.answers or {}).get(question["id"]) or ""
            if question["required"] and not str(answer).strip():
                raise ValidationError(
                    f"Please answer required question for {product.title}: {question['label']}",
                    field=question["id"],
                )

        if product.pay_what_you_want:
            if item.amount_paid_per_unit < 0:
                raise ValidationError("Amount paid must not be negative", field="amount_paid_per_unit")
            if product.minimum_price and item.amount_paid_per_unit < product.minimum_price:
                raise ValidationError(
                    f"{product.title} requires at least {product.minimum_price}",
                    field="amount_paid_per_unit",
                )

        unit_price = product.effective_unit_price(item.amount_paid_per_unit)
        by_creator.setdefault(product.user_id, []).append(
            _PricedItem(
                product=product,
                quantity=item.quantity,
                unit_price=unit_price,
                total=unit_price * item.quantity,
                answers=dict(item.answers or {}),
            )
        )

    return by_creator


def _build_order(
    creator_id: str,
    priced: List[_PricedItem],
    buyer: BuyerInfo,
    checkout_group_id: str,
    idempotency_key: str,
    now: datetime,
) -> Order:
    amount = sum(p.total for p in priced)
    primary = priced[0]
    single = len(priced) == 1

    order = Order(
        uuid=str(uuid4()),
        creator_id=creator_id,
        product_id=primary.product.uuid if single else None,
        product_title=primary.product.title if single else f"{len(priced)} products",
        product_price=primary.unit_price if single else amount,
        product_image=(primary.product.images or [None])[0],
        buyer_email=buyer.email,
        buyer_name=buyer.name or "",
        quantity=sum(p.quantity for p in priced),
        amount_paid=amount,
        checkout_answers=primary.answers if single else None,
        note=buyer.note,
        checkout_group_id=checkout_group_id,
        idempotency_key=idempotency_key,
        delivery_token=str(uuid4()),
        status=OrderStatus.COMPLETED,
        email_sent=False,
        created_at=now,
        updated_at=now,
    )
    for p in priced:
        order.items.append(
            OrderItem(
                uuid=str(uuid4()),
                creator_id=creator_id,
                product_id=p.product.uuid,
                product_title=p.product.title,
                product_price=p.unit_price,
                product_image=(p.product.images or [None])[0],
                quantity=p.quantity,
                amount_paid=p.total,
                checkout_answers=p.answers,
                created_at=now,
            )
        )
    return order


async def _reserve_stock(db: AsyncSession, product: Product, quantity: int) -> None:
    """Decrement limited stock; a concurrent checkout may have taken it since validation."""
    if product.total_quantity is None:
        return
    result = await db.execute(
        update(Product)
        .where(Product.uuid == product.uuid, Product.total_quantity >= quantity)
        .values(total_quantity=Product.total_quantity - quantity)
    )
    if result.rowcount == 0:
        raise ValidationError(
            f"Product {product.title} sold out or not enough stock",
            details={"product_id": product.uuid},
        )


async def _bump_cached_counters(db: AsyncSession, creator_id: str, priced: List[_PricedItem], net: int) -> None:
    # Display-only counters; the ledger stays authoritative (see reconciliation)
    for p in priced:
        await db.execute(
            update(Product)
            .where(Product.uuid == p.product.uuid)
            .values(
                sales_count=Product.sales_count + p.quantity,
                total_revenue=Product.total_revenue + p.total,
            )
        )
    await db.execute(
        update(User)
        .where(User.uuid == creator_id)
        .values(
            total_sales_count=User.total_sales_count + sum(p.quantity for p in priced),
            total_revenue=User.total_revenue + net,
        )
    )


async def create_order(
    db: AsyncSession,
    items: Sequence[CartItem],
    buyer: BuyerInfo,
    idempotency_key: str,
    now: Optional[datetime] = None,
    notify: bool = True,
) -> CheckoutResult:
    """
    Create the orders and sale credits for one checkout, exactly once per key.

    A repeated key returns the checkout it first created, unchanged. A cart
    spanning several creators produces one order and one SALE transaction
    per creator, all sharing a checkout_group_id and committed together.

    Raises:
        ValidationError: cart, stock, price or buyer problems; nothing written.
        ConcurrencyConflictError: the key's uniqueness constraint fired but the
            winning checkout could not be re-read.
        InternalPersistenceError: storage failure; nothing written.
    """
    now = now or datetime.utcnow()
    _validate_request(items, buyer, idempotency_key)

    existing = await find_checkout_by_key(db, idempotency_key)
    if existing is not None:
        logger.info(f"[finance] duplicate checkout submission for key {idempotency_key}, returning existing orders")
        return existing

    products = await get_products_for_checkout(db, [item.product_id for item in items])
    by_creator = _price_cart(items, products)
    creators = await get_creators(db, by_creator.keys())

    checkout_group_id = str(uuid4())
    orders: List[Order] = []

    try:
        async with unit_of_work(db, "Checkout"):
            ledger = LedgerStore(db)

            for index, (creator_id, priced) in enumerate(by_creator.items()):
                order_key = idempotency_key if index == 0 else f"{idempotency_key}:{creator_id}"
                order = _build_order(creator_id, priced, buyer, checkout_group_id, order_key, now)
                db.add(order)
                await db.flush()
                orders.append(order)

                creator = creators.get(creator_id)
                fee_percent = platform_fee_percent_for(creator)
                fee, net = calculate_fee(order.amount_paid, fee_percent)

                await ledger.append(
                    Transaction(
                        uuid=str(uuid4()),
                        creator_id=creator_id,
                        order_id=order.uuid,
                        type=TransactionType.SALE,
                        amount=order.amount_paid,
                        net_amount=net,
                        platform_fee_percent=fee_percent,
                        platform_fee_amount=fee,
                        description=f"Sale: {order.product_title} x{order.quantity}",
                        details={
                            "checkout_group_id": checkout_group_id,
                            "buyer_email": buyer.email,
                            "items": [
                                {"product_id": p.product.uuid, "quantity": p.quantity, "amount": p.total}
                                for p in priced
                            ],
                        },
                        available_at=compute_available_at(creator, now),
                        created_at=now,
                    )
                )

                for p in priced:
                    await _reserve_stock(db, p.product, p.quantity)
                await _bump_cached_counters(db, creator_id, priced, net)

    except IntegrityError as e:
        # Lost the race to a concurrent submission with the same key
        winner = await find_checkout_by_key(db, idempotency_key)
        if winner is None:
            logger.error(f"[finance] checkout integrity error without a winning order: {e}")
            raise ConcurrencyConflictError("orders.idempotency_key", idempotency_key) from e
        logger.info(f"[finance] concurrent checkout for key {idempotency_key} resolved to existing orders")
        return winner

    result = CheckoutResult(checkout_group_id=checkout_group_id, orders=orders, created=True)
    logger.info(
        f"[finance] checkout {checkout_group_id} committed: {len(orders)} order(s), "
        f"total={result.total_amount}"
    )

    if notify:
        await notify_order_created(result)

    return result


async def mark_orders_emailed(db: AsyncSession, order_ids: Sequence[str], sent_at: Optional[datetime] = None) -> None:
    """Email bookkeeping, the only update an order receives after intake."""
    if not order_ids:
        return
    sent_at = sent_at or datetime.utcnow()
    async with unit_of_work(db, "Order email bookkeeping"):
        await db.execute(
            update(Order)
            .where(Order.uuid.in_(list(order_ids)))
            .values(email_sent=True, email_sent_at=sent_at, updated_at=sent_at)
        )


async def list_creator_orders(db: AsyncSession, creator_id: str, limit: int = 50, offset: int = 0) -> List[Order]:
    """Orders where the creator is the seller, newest first."""
    item_orders = select(OrderItem.order_id).where(OrderItem.creator_id == creator_id)
    result = await db.execute(
        select(Order)
        .where((Order.creator_id == creator_id) | (Order.uuid.in_(item_orders)))
        .order_by(Order.created_at.desc(), Order.uuid.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())
