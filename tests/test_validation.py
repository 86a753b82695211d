import uuid

import pytest

from menuchat.core.errors import ErrorCode, Rejected
from menuchat.schemas import (
    ChatRequest,
    MenuItemCreate,
    MenuItemUpdate,
    OrderCreate,
    OrderListQuery,
    SessionCreate,
)
from menuchat.services.validation import ValidatedRequest, validate

TENANT = "3f2b8c1e-4d5a-4b6c-8d7e-9f0a1b2c3d4e"


def issue_paths(result) -> list[str]:
    assert isinstance(result, Rejected)
    assert result.code == ErrorCode.BAD_REQUEST
    return [issue["path"] for issue in result.extra["issues"]]


def item_payload(**overrides):
    payload = {"tenantId": TENANT, "name": "Margherita Pizza", "priceCents": 1999}
    payload.update(overrides)
    return payload


# =============================================================================
# MONEY
# =============================================================================

def test_integer_price_accepted_unchanged():
    result = validate(item_payload(), MenuItemCreate)
    assert isinstance(result, ValidatedRequest)
    assert result.data.price_cents == 1999


@pytest.mark.parametrize("price", [19.99, 1999.0, "1999", -1, True])
def test_non_integer_or_negative_price_rejected(price):
    result = validate(item_payload(priceCents=price), MenuItemCreate)
    assert issue_paths(result) == ["priceCents"]


# =============================================================================
# REQUIRED FIELDS AND BOUNDS
# =============================================================================

def test_missing_name_names_the_field():
    payload = item_payload()
    del payload["name"]
    assert "name" in issue_paths(validate(payload, MenuItemCreate))


def test_every_issue_is_reported():
    paths = issue_paths(validate({"tenantId": TENANT, "priceCents": 1.5}, MenuItemCreate))
    assert set(paths) == {"name", "priceCents"}


def test_message_length_bounds():
    ok = validate({"tenantId": TENANT, "sessionToken": "t", "message": "x" * 500}, ChatRequest)
    too_long = validate({"tenantId": TENANT, "sessionToken": "t", "message": "x" * 501}, ChatRequest)
    empty = validate({"tenantId": TENANT, "sessionToken": "t", "message": "   "}, ChatRequest)

    assert isinstance(ok, ValidatedRequest)
    assert issue_paths(too_long) == ["message"]
    assert issue_paths(empty) == ["message"]


def test_nested_issue_paths_are_dotted():
    payload = {
        "tenantId": TENANT,
        "sessionToken": "t",
        "type": "pickup",
        "items": [{"itemId": str(uuid.uuid4()), "qty": 0}],
    }
    assert issue_paths(validate(payload, OrderCreate)) == ["items.0.qty"]


def test_duplicate_order_lines_rejected_as_whole_object_issue():
    item_id = str(uuid.uuid4())
    payload = {
        "tenantId": TENANT,
        "sessionToken": "t",
        "type": "pickup",
        "items": [{"itemId": item_id, "qty": 1}, {"itemId": item_id, "qty": 2}],
    }
    result = validate(payload, OrderCreate)
    assert issue_paths(result) == [""]
    assert "only once" in result.extra["issues"][0]["message"]


@pytest.mark.parametrize("raw", [None, [], "text", 3])
def test_non_object_payload_rejected(raw):
    assert issue_paths(validate(raw, SessionCreate)) == [""]


def test_list_limit_bounds():
    assert isinstance(validate({"tenantId": TENANT, "limit": "100"}, OrderListQuery), ValidatedRequest)
    assert issue_paths(validate({"tenantId": TENANT, "limit": "101"}, OrderListQuery)) == ["limit"]


# =============================================================================
# NORMALIZATION AND NAMING
# =============================================================================

def test_normalizes_strings_currency_and_tags():
    result = validate(
        item_payload(name="  Pad Thai ", currency=" sek ", tags=[" Vegan ", "vegan", "Spicy", "  "]),
        MenuItemCreate,
    )
    data = result.data
    assert data.name == "Pad Thai"
    assert data.currency == "SEK"
    assert data.tags == ["vegan", "spicy"]
    assert data.is_available is True


def test_bad_currency_rejected():
    assert issue_paths(validate(item_payload(currency="KRONA"), MenuItemCreate)) == ["currency"]


def test_camel_and_snake_case_are_equivalent():
    camel = validate(item_payload(isAvailable=False), MenuItemCreate).data
    snake = validate(
        {"tenant_id": TENANT, "name": "Margherita Pizza", "price_cents": 1999, "is_available": False},
        MenuItemCreate,
    ).data
    assert camel.model_dump() == snake.model_dump()


@pytest.mark.parametrize("key", ["tenantId", "tenant_id", "restaurantId", "restaurant_id"])
def test_tenant_id_spellings(key):
    result = validate({key: TENANT}, SessionCreate)
    assert result.data.tenant_id == TENANT


def test_validation_is_idempotent():
    first = validate(
        item_payload(sectionId=str(uuid.uuid4()), currency="eur", tags=["Popular"], description=" Classic "),
        MenuItemCreate,
    ).data

    again_camel = validate(first.model_dump(by_alias=True), MenuItemCreate).data
    again_snake = validate(first.model_dump(), MenuItemCreate).data

    assert again_camel.model_dump() == first.model_dump()
    assert again_snake.model_dump() == first.model_dump()


@pytest.mark.parametrize("patch", [
    {"priceCents": 1999},
    {"description": None, "isAvailable": False},
    {"sectionId": "3f2b8c1e-4d5a-4b6c-8d7e-9f0a1b2c3d4f", "tags": [" Spicy "], "currency": "eur"},
])
def test_partial_update_validation_is_idempotent(patch):
    first = validate({"tenantId": TENANT, **patch}, MenuItemUpdate).data

    again_camel = validate(first.model_dump(by_alias=True), MenuItemUpdate)
    again_snake = validate(first.model_dump(), MenuItemUpdate)

    assert isinstance(again_camel, ValidatedRequest)
    assert isinstance(again_snake, ValidatedRequest)
    assert again_camel.data.changes() == first.changes()
    assert again_snake.data.model_dump() == first.model_dump()


def test_partial_update_dump_omits_unsupplied_fields():
    data = validate({"tenantId": TENANT, "priceCents": 1999}, MenuItemUpdate).data
    assert data.model_dump(by_alias=True) == {"tenantId": TENANT, "priceCents": 1999}


def test_order_type_is_case_insensitive():
    payload = {
        "tenantId": TENANT,
        "sessionToken": "t",
        "type": "DINE_IN",
        "items": [{"itemId": str(uuid.uuid4()), "qty": 1}],
    }
    assert validate(payload, OrderCreate).data.type.value == "dine_in"


# =============================================================================
# PARTIAL UPDATES
# =============================================================================

def test_update_requires_a_change():
    assert issue_paths(validate({"tenantId": TENANT}, MenuItemUpdate)) == [""]


def test_update_rejects_null_for_required_fields():
    result = validate({"tenantId": TENANT, "name": None, "priceCents": None}, MenuItemUpdate)
    assert issue_paths(result) == [""]
    assert "name" in result.extra["issues"][0]["message"]


def test_update_changes_are_only_supplied_fields():
    data = validate({"tenantId": TENANT, "description": None, "isAvailable": False}, MenuItemUpdate).data
    assert data.changes() == {"description": None, "is_available": False}
