import re
import uuid

import pytest

from menuchat.core.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from menuchat.models import OrderStatus, OrderType
from menuchat.schemas import OrderCreate, OrderLineCreate
from menuchat.services.orders import (
    ALLOWED_TRANSITIONS,
    can_transition,
    change_status,
    generate_order_code,
    place_order,
    price_lines,
)
from tests.conftest import make_item


def line(item, qty=1):
    return OrderLineCreate(item_id=uuid.UUID(item.id), qty=qty)


def test_order_codes_are_short_and_uppercase():
    codes = {generate_order_code() for _ in range(50)}
    assert all(re.fullmatch(r"[A-Z0-9]{6}", code) for code in codes)
    assert len(codes) > 1


@pytest.mark.parametrize("current,new,allowed", [
    (OrderStatus.PENDING, OrderStatus.PAID, True),
    (OrderStatus.PENDING, OrderStatus.EXPIRED, True),
    (OrderStatus.PENDING, OrderStatus.PREPARING, False),
    (OrderStatus.PAID, OrderStatus.PREPARING, True),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED, True),
    (OrderStatus.READY, OrderStatus.COMPLETED, True),
    (OrderStatus.READY, OrderStatus.CANCELLED, False),
    (OrderStatus.COMPLETED, OrderStatus.CANCELLED, False),
    (OrderStatus.EXPIRED, OrderStatus.PENDING, False),
])
def test_transitions(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_every_status_has_a_transition_entry():
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)


def test_price_lines_sums_integer_minor_units():
    pizza = make_item("Pizza", price_cents=12900)
    salad = make_item("Salad", price_cents=4950)

    total, currency, lines = price_lines([line(pizza, 3), line(salad, 1)], [salad, pizza])

    assert total == 3 * 12900 + 4950
    assert isinstance(total, int)
    assert currency == "SEK"
    assert [(l.name, l.qty) for l in lines] == [("Pizza", 3), ("Salad", 1)]


def test_price_lines_errors():
    pizza = make_item("Pizza")
    gone = make_item("Gone", is_available=False)
    euro = make_item("Wine", currency="EUR")

    with pytest.raises(NotFoundError) as missing:
        price_lines([line(pizza)], [])
    assert missing.value.code == ErrorCode.ITEM_NOT_FOUND
    assert missing.value.extra == {"itemIds": [pizza.id]}

    with pytest.raises(ConflictError) as unavailable:
        price_lines([line(gone)], [gone])
    assert unavailable.value.code == ErrorCode.ITEM_UNAVAILABLE

    with pytest.raises(ValidationError):
        price_lines([line(pizza), line(euro)], [pizza, euro])


@pytest.mark.asyncio
async def test_place_order_and_change_status(store, tenant):
    pizza = store.add_item(tenant.id, name="Pizza", price_cents=12900, currency="SEK")
    request = OrderCreate(tenant_id=tenant.id, session_token="t", type=OrderType.PICKUP, items=[line(pizza, 2)])

    order = await place_order(store, tenant.id, None, request)
    assert order.status == OrderStatus.PENDING
    assert order.total_cents == 25800

    paid = await change_status(store, tenant.id, order.id, OrderStatus.PAID)
    assert paid.status == OrderStatus.PAID


@pytest.mark.asyncio
async def test_lost_race_is_a_conflict(store, tenant, monkeypatch):
    pizza = store.add_item(tenant.id, name="Pizza", price_cents=100, currency="SEK")
    request = OrderCreate(tenant_id=tenant.id, session_token="t", type=OrderType.PICKUP, items=[line(pizza)])
    order = await place_order(store, tenant.id, None, request)

    async def stale(*args, **kwargs):
        return None

    monkeypatch.setattr(store, "update_order_status", stale)

    with pytest.raises(ConflictError) as exc:
        await change_status(store, tenant.id, order.id, OrderStatus.PAID)
    assert exc.value.code == ErrorCode.CONFLICT


@pytest.mark.asyncio
async def test_compare_and_set_only_one_writer_wins(store, tenant):
    pizza = store.add_item(tenant.id, name="Pizza", price_cents=100, currency="SEK")
    request = OrderCreate(tenant_id=tenant.id, session_token="t", type=OrderType.PICKUP, items=[line(pizza)])
    order = await place_order(store, tenant.id, None, request)

    first = await store.update_order_status(tenant.id, order.id, OrderStatus.PENDING, OrderStatus.PAID)
    second = await store.update_order_status(tenant.id, order.id, OrderStatus.PENDING, OrderStatus.CANCELLED)

    assert first.status == OrderStatus.PAID
    assert second is None


@pytest.mark.asyncio
async def test_change_status_of_missing_order(store, tenant):
    with pytest.raises(NotFoundError) as exc:
        await change_status(store, tenant.id, str(uuid.uuid4()), OrderStatus.PAID)
    assert exc.value.code == ErrorCode.ORDER_NOT_FOUND
