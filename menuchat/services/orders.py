"""
Order placement and status lifecycle.

Totals are computed server-side from the tenant's own menu items, always
as integers in minor currency units:

    total_cents = sum(item.price_cents * qty)

Status moves along ALLOWED_TRANSITIONS only, and each move is a
compare-and-set on the status the caller read, so two staff members
racing on the same order cannot both win.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import secrets
import string
from typing import Optional, Sequence

from menuchat.core.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from menuchat.models import OrderStatus
from menuchat.schemas import MenuItemView, OrderCreate, OrderLineCreate
from menuchat.services.datastore.base import BaseDataStore, NewOrder, Order, OrderLine

logger = logging.getLogger(__name__)

ORDER_CODE_ALPHABET = string.ascii_uppercase + string.digits
ORDER_CODE_LENGTH = 6

ALLOWED_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.EXPIRED),
    OrderStatus.PAID: (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.READY: (OrderStatus.COMPLETED,),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
    OrderStatus.EXPIRED: (),
}


def generate_order_code() -> str:
    return "".join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(ORDER_CODE_LENGTH))


def can_transition(current: OrderStatus, new_status: OrderStatus) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current, ())


def price_lines(
    requested: Sequence[OrderLineCreate],
    catalog: Sequence[MenuItemView],
) -> tuple[int, str, list[OrderLine]]:
    """
    Match requested lines against menu items and total them.

    Raises:
        NotFoundError: An item id is not on this tenant's menu
        ConflictError: An item is currently unavailable
        ValidationError: Items are priced in different currencies
    """
    by_id = {item.id: item for item in catalog}

    missing = [str(line.item_id) for line in requested if str(line.item_id) not in by_id]
    if missing:
        raise NotFoundError(ErrorCode.ITEM_NOT_FOUND, itemIds=missing)

    unavailable = [str(line.item_id) for line in requested if not by_id[str(line.item_id)].is_available]
    if unavailable:
        raise ConflictError(ErrorCode.ITEM_UNAVAILABLE, itemIds=unavailable)

    currencies = {by_id[str(line.item_id)].currency for line in requested}
    if len(currencies) > 1:
        raise ValidationError(
            "Items are priced in different currencies",
            issues=[{"path": "items", "message": "All items must share one currency"}],
        )

    lines = []
    total = 0
    for line in requested:
        item = by_id[str(line.item_id)]
        total += item.price_cents * line.qty
        lines.append(OrderLine(item_id=item.id, name=item.name, qty=line.qty, price_cents=item.price_cents))

    return total, currencies.pop(), lines


async def place_order(
    datastore: BaseDataStore,
    tenant_id: str,
    session_id: Optional[str],
    request: OrderCreate,
) -> Order:
    """Price and persist a new pending order."""
    catalog = await datastore.get_menu_items(tenant_id, [str(line.item_id) for line in request.items])
    total, currency, lines = price_lines(request.items, catalog)

    order = await datastore.create_order(NewOrder(
        tenant_id=tenant_id,
        session_id=session_id,
        order_code=generate_order_code(),
        type=request.type,
        total_cents=total,
        currency=currency,
        lines=lines,
    ))
    logger.info(f"Order {order.order_code} created for tenant {tenant_id}: {total} {currency}")
    return order


async def change_status(
    datastore: BaseDataStore,
    tenant_id: str,
    order_id: str,
    new_status: OrderStatus,
) -> Order:
    """
    Move an order to a new status.

    Raises:
        NotFoundError: No such order for this tenant
        ConflictError: Transition not allowed (INVALID_TRANSITION), or the
            status changed between read and write (CONFLICT)
    """
    current = await datastore.get_order(tenant_id, order_id)
    if current is None:
        raise NotFoundError(ErrorCode.ORDER_NOT_FOUND)

    if not can_transition(current.status, new_status):
        raise ConflictError(
            ErrorCode.INVALID_TRANSITION,
            **{
                "from": current.status.value,
                "to": new_status.value,
                "allowed": [s.value for s in ALLOWED_TRANSITIONS.get(current.status, ())],
            },
        )

    updated = await datastore.update_order_status(tenant_id, order_id, current.status, new_status)
    if updated is None:
        logger.warning(f"Order {order_id} changed concurrently; {current.status.value} -> {new_status.value} lost")
        raise ConflictError(ErrorCode.CONFLICT, message="Order status changed concurrently")

    logger.info(f"Order {current.order_code}: {current.status.value} -> {new_status.value}")
    return updated
