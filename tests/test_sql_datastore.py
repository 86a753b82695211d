"""
SqlDataStore against a throwaway SQLite file (aiosqlite driver).
"""

import uuid

import pytest
import pytest_asyncio

from menuchat.core.errors import ConflictError
from menuchat.database import Database
from menuchat.models import OrderStatus, OrderType, Restaurant
from menuchat.services.datastore.base import NewOrder, OrderLine
from menuchat.services.datastore.sql import SqlDataStore

TENANT_ID = "5f0c6a52-8a9e-4c57-9d61-3f1e2b7c4a10"


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.create_all()
    async with database.session_maker() as session:
        session.add(Restaurant(
            id=uuid.UUID(TENANT_ID),
            name="Trattoria Test",
            is_active=True,
            is_verified=True,
            allowed_origins=["https://example.com"],
        ))
        await session.commit()

    store = SqlDataStore(database)
    yield store
    await store.close()


async def new_order(store, item, code="ABC123", qty=2):
    return await store.create_order(NewOrder(
        tenant_id=TENANT_ID,
        session_id=None,
        order_code=code,
        type=OrderType.PICKUP,
        total_cents=item.price_cents * qty,
        currency=item.currency,
        lines=[OrderLine(item_id=item.id, name=item.name, qty=qty, price_cents=item.price_cents)],
    ))


@pytest.mark.asyncio
async def test_ping(sql_store):
    assert await sql_store.ping() is True


@pytest.mark.asyncio
async def test_get_tenant(sql_store):
    tenant = await sql_store.get_tenant(TENANT_ID)

    assert tenant.id == TENANT_ID
    assert tenant.allowed_origins == ("https://example.com",)
    assert await sql_store.get_tenant(str(uuid.uuid4())) is None
    assert await sql_store.get_tenant("not-a-uuid") is None


@pytest.mark.asyncio
async def test_sessions_are_found_by_digest(sql_store):
    created = await sql_store.create_session(TENANT_ID, "a" * 64, origin="https://example.com", locale="sv-SE")

    found = await sql_store.find_session(TENANT_ID, "a" * 64)
    assert found.id == created.id
    assert found.locale == "sv-SE"

    assert await sql_store.find_session(TENANT_ID, "b" * 64) is None
    assert await sql_store.find_session(str(uuid.uuid4()), "a" * 64) is None

    await sql_store.touch_session(created.id)


@pytest.mark.asyncio
async def test_duplicate_token_digest_conflicts(sql_store):
    await sql_store.create_session(TENANT_ID, "c" * 64)
    with pytest.raises(ConflictError):
        await sql_store.create_session(TENANT_ID, "c" * 64)


@pytest.mark.asyncio
async def test_sections_unique_per_menu(sql_store):
    await sql_store.create_section(TENANT_ID, "dinner", "Mains", position=2)
    await sql_store.create_section(TENANT_ID, "dinner", "Starters", position=1)
    await sql_store.create_section(TENANT_ID, "lunch", "Mains")

    with pytest.raises(ConflictError):
        await sql_store.create_section(TENANT_ID, "dinner", "Mains")

    dinner = await sql_store.list_sections(TENANT_ID, menu="dinner")
    assert [s.name for s in dinner] == ["Starters", "Mains"]
    assert len(await sql_store.list_sections(TENANT_ID)) == 3


@pytest.mark.asyncio
async def test_menu_item_crud(sql_store):
    section = await sql_store.create_section(TENANT_ID, "dinner", "Pizza")
    item = await sql_store.create_menu_item(TENANT_ID, {
        "section_id": section.id,
        "name": "Margherita",
        "price_cents": 12900,
        "currency": "SEK",
        "tags": ["italian", "vegetarian"],
        "is_available": True,
    })

    assert item.section_id == section.id
    assert item.tags == ["italian", "vegetarian"]

    updated = await sql_store.update_menu_item(TENANT_ID, item.id, {"price_cents": 13900, "is_available": False})
    assert updated.price_cents == 13900
    assert updated.is_available is False

    assert await sql_store.list_menu_items(TENANT_ID, available_only=True) == []
    assert [i.id for i in await sql_store.list_menu_items(TENANT_ID, section_id=section.id)] == [item.id]
    assert [i.id for i in await sql_store.get_menu_items(TENANT_ID, [item.id, "junk"])] == [item.id]

    assert await sql_store.update_menu_item(str(uuid.uuid4()), item.id, {"name": "Stolen"}) is None
    assert await sql_store.delete_menu_item(TENANT_ID, item.id) is True
    assert await sql_store.delete_menu_item(TENANT_ID, item.id) is False


@pytest.mark.asyncio
async def test_orders_round_trip_with_lines(sql_store):
    item = await sql_store.create_menu_item(TENANT_ID, {"name": "Lasagne", "price_cents": 14500, "currency": "SEK"})

    order = await new_order(sql_store, item)

    assert order.status == OrderStatus.PENDING
    assert order.total_cents == 29000
    assert [(l.item_id, l.qty) for l in order.lines] == [(item.id, 2)]

    fetched = await sql_store.get_order(TENANT_ID, order.id)
    assert fetched.order_code == "ABC123"
    assert await sql_store.get_order(str(uuid.uuid4()), order.id) is None

    total, orders = await sql_store.list_orders(TENANT_ID)
    assert total == 1
    assert orders[0].id == order.id


@pytest.mark.asyncio
async def test_duplicate_order_code_conflicts(sql_store):
    item = await sql_store.create_menu_item(TENANT_ID, {"name": "Lasagne", "price_cents": 100, "currency": "SEK"})
    await new_order(sql_store, item, code="SAME01")
    with pytest.raises(ConflictError):
        await new_order(sql_store, item, code="SAME01")


@pytest.mark.asyncio
async def test_status_compare_and_set(sql_store):
    item = await sql_store.create_menu_item(TENANT_ID, {"name": "Lasagne", "price_cents": 100, "currency": "SEK"})
    order = await new_order(sql_store, item)

    paid = await sql_store.update_order_status(TENANT_ID, order.id, OrderStatus.PENDING, OrderStatus.PAID)
    stale = await sql_store.update_order_status(TENANT_ID, order.id, OrderStatus.PENDING, OrderStatus.CANCELLED)

    assert paid.status == OrderStatus.PAID
    assert stale is None

    total, orders = await sql_store.list_orders(TENANT_ID, status=OrderStatus.PAID)
    assert total == 1
    assert orders[0].status == OrderStatus.PAID


@pytest.mark.asyncio
async def test_update_section(sql_store):
    pizza = await sql_store.create_section(TENANT_ID, "dinner", "Pizza")
    await sql_store.create_section(TENANT_ID, "dinner", "Pasta")

    renamed = await sql_store.update_section(TENANT_ID, pizza.id, {"name": "Pizzas", "position": 3})
    assert (renamed.name, renamed.position) == ("Pizzas", 3)

    with pytest.raises(ConflictError):
        await sql_store.update_section(TENANT_ID, pizza.id, {"name": "Pasta"})

    assert await sql_store.update_section(str(uuid.uuid4()), pizza.id, {"name": "Stolen"}) is None
    assert await sql_store.update_section(TENANT_ID, "junk", {"name": "X"}) is None


@pytest.mark.asyncio
async def test_delete_section_leaves_items_unsectioned(sql_store):
    section = await sql_store.create_section(TENANT_ID, "dinner", "Pizza")
    item = await sql_store.create_menu_item(TENANT_ID, {
        "section_id": section.id,
        "name": "Margherita",
        "price_cents": 12900,
        "currency": "SEK",
    })

    assert await sql_store.delete_section(TENANT_ID, section.id) is True
    assert await sql_store.delete_section(TENANT_ID, section.id) is False

    assert await sql_store.list_sections(TENANT_ID) == []
    [kept] = await sql_store.list_menu_items(TENANT_ID)
    assert kept.id == item.id
    assert kept.section_id is None
