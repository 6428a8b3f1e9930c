"""Post-commit order notification hooks.

Buyer emails and receipts live outside this service. Whatever implements
them registers an async hook here; hooks run after the order has committed
and their failures are logged, never propagated, because the sale is
already final.
"""
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

OrderHook = Callable[["CheckoutResult"], Awaitable[None]]

_order_hooks: List[OrderHook] = []


def register_order_hook(hook: OrderHook) -> OrderHook:
    """Register a hook; usable as a decorator."""
    if hook not in _order_hooks:
        _order_hooks.append(hook)
    return hook


def unregister_order_hook(hook: OrderHook) -> None:
    if hook in _order_hooks:
        _order_hooks.remove(hook)


async def notify_order_created(result, hooks: Optional[List[OrderHook]] = None) -> int:
    """
    Run every hook for a freshly committed checkout.

    Returns the number of hooks that completed without raising.
    """
    succeeded = 0
    for hook in list(hooks if hooks is not None else _order_hooks):
        try:
            await hook(result)
            succeeded += 1
        except Exception as e:
            logger.error(
                f"Order hook {getattr(hook, '__name__', hook)} failed for checkout "
                f"{result.checkout_group_id}: {e}",
                exc_info=True,
            )
    return succeeded


@register_order_hook
async def log_order_created(result) -> None:
    for order in result.orders:
        logger.info(
            f"[finance] order {order.uuid} committed for creator {order.creator_id} "
            f"amount={order.amount_paid} group={result.checkout_group_id}"
        )
