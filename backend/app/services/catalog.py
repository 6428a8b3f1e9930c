"""Read-only lookups into the product catalog and creator accounts."""
import logging
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.product import Product
from app.models.user import User

logger = logging.getLogger(__name__)


async def get_products_for_checkout(db: AsyncSession, product_ids: Iterable[str]) -> Dict[str, Product]:
    """Current catalog rows for the given ids, skipping deleted products."""
    ids = list(dict.fromkeys(product_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Product).where(
            Product.uuid.in_(ids),
            Product.is_deleted.is_(False),
        )
    )
    return {product.uuid: product for product in result.scalars().all()}


async def get_creators(db: AsyncSession, creator_ids: Iterable[str]) -> Dict[str, User]:
    ids = list(dict.fromkeys(creator_ids))
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.uuid.in_(ids)))
    return {user.uuid: user for user in result.scalars().all()}


def platform_fee_percent_for(creator: User | None) -> float:
    """Fee percent applied to a creator's sales; creator override, else the platform default."""
    if creator is not None and creator.platform_fee_percent is not None:
        return float(creator.platform_fee_percent)
    return float(settings.PLATFORM_FEE_PERCENT)


def parse_customer_questions(raw) -> List[dict]:
    """
    Normalise a product's checkout questions.

    Malformed entries are dropped rather than failing the checkout; each
    question kept has a string id and label and a boolean required flag.
    """
    if not isinstance(raw, list):
        return []
    questions = []
    for question in raw:
        if (
            isinstance(question, dict)
            and isinstance(question.get("id"), str)
            and isinstance(question.get("label"), str)
            and isinstance(question.get("required"), bool)
        ):
            questions.append({
                "id": question["id"],
                "label": question["label"],
                "required": question["required"],
            })
    return questions
