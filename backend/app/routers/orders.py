"""Checkout and order listing router."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.database import get_db
from app.auth.dependencies import get_current_active_user
from app.exceptions import ValidationError
from app.models.user import User
from app.rate_limit import limiter
from app.schemas.orders import CheckoutRequest, CheckoutResponse, OrderResponse
from app.services.orders import BuyerInfo, CartItem, create_order, list_creator_orders

router = APIRouter()


@router.post("/api/orders/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def checkout(
    request: Request,
    checkout_data: CheckoutRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_db)
):
    """
    Multi-product cart checkout (public).

    - Splits the cart into one order per creator sharing a checkout_group_id
    - Posts one sale transaction per creator
    - Replaying the same Idempotency-Key returns the original checkout with 200
    """
    key = idempotency_key or checkout_data.idempotency_key
    if not key:
        raise ValidationError("Idempotency-Key header is required", field="idempotency_key")

    result = await create_order(
        db,
        [
            CartItem(
                product_id=item.product_id,
                quantity=item.quantity,
                amount_paid_per_unit=item.amount_paid_per_unit,
                answers=item.answers,
            )
            for item in checkout_data.items
        ],
        BuyerInfo(
            email=str(checkout_data.buyer_email),
            name=checkout_data.buyer_name,
            note=checkout_data.note,
        ),
        key,
    )

    response = CheckoutResponse(
        checkout_group_id=result.checkout_group_id,
        created=result.created,
        total_amount=result.total_amount,
        delivery_urls=result.delivery_urls,
        orders=[OrderResponse.model_validate(order) for order in result.orders],
    )
    if not result.created:
        return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(mode="json"))
    return response


@router.get("/api/orders", response_model=List[OrderResponse])
async def get_orders(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """List orders sold by the creator, newest first."""
    orders = await list_creator_orders(db, current_user.uuid, limit=limit, offset=offset)
    return [OrderResponse.model_validate(order) for order in orders]
