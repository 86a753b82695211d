"""
Pydantic Schemas for Request/Response Validation

One canonical (snake_case) model per entity. Every request model accepts
both spellings at the boundary, camelCase (priceCents) and snake_case
(price_cents), and the tenant id additionally accepts the legacy
restaurantId / restaurant_id names.

Normalization:
- Strings are trimmed
- Currency codes are upper-cased 3-letter codes
- Tags are trimmed, lower-cased and de-duplicated
- is_available defaults to True

Money is always an integer in minor currency units. Floats are rejected,
never rounded.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
import uuid
from datetime import datetime
from typing import Any, Optional, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from menuchat.models import OrderStatus, OrderType

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
MAX_PRICE_CENTS = 10_000_000
MAX_TAGS = 20
MAX_TAG_LENGTH = 30
NON_NULLABLE_ITEM_FIELDS = ("name", "price_cents", "currency", "tags", "is_available")


# =============================================================================
# SHARED NORMALIZERS
# =============================================================================

def normalize_currency(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().upper()
    if not CURRENCY_PATTERN.match(value):
        raise ValueError("Currency must be a 3-letter code")
    return value


def normalize_tags(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    seen: list[str] = []
    for raw in values:
        tag = raw.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
        if tag not in seen:
            seen.append(tag)
    return seen


def tenant_id_field(**kwargs: Any) -> Any:
    return Field(
        ...,
        validation_alias=AliasChoices("tenantId", "tenant_id", "restaurantId", "restaurant_id"),
        serialization_alias="tenantId",
        **kwargs,
    )


class RequestModel(BaseModel):
    """Base for request payloads: camel/snake adapter plus string trimming."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ViewModel(BaseModel):
    """Base for response shapes, serialized with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# WIDGET REQUESTS
# =============================================================================

class SessionCreate(RequestModel):
    """POST /sessions"""
    tenant_id: str = tenant_id_field()
    locale: Optional[str] = Field(None, max_length=20, examples=["sv-SE"])


class ChatRequest(RequestModel):
    """POST /chat"""
    tenant_id: str = tenant_id_field()
    session_token: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=500, examples=["vegan options?"])


class MenuQuery(RequestModel):
    """GET /menu"""
    tenant_id: str = tenant_id_field()
    menu: Optional[str] = Field(None, min_length=1, max_length=60)
    include_unavailable: bool = False


class OrderLineCreate(RequestModel):
    item_id: uuid.UUID
    qty: int = Field(..., ge=1, le=99, examples=[2])


class OrderCreate(RequestModel):
    """POST /orders"""
    tenant_id: str = tenant_id_field()
    session_token: str = Field(..., min_length=1, max_length=200)
    type: OrderType = Field(..., examples=["pickup"])
    items: List[OrderLineCreate] = Field(..., min_length=1, max_length=50)

    @field_validator("type", mode="before")
    @classmethod
    def lower_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def unique_items(self) -> "OrderCreate":
        ids = [line.item_id for line in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("Each itemId may appear only once; use qty instead")
        return self


class TenantQuery(RequestModel):
    """Query string carrying only the tenant id."""
    tenant_id: str = tenant_id_field()


# =============================================================================
# DASHBOARD REQUESTS
# =============================================================================

class SectionCreate(RequestModel):
    tenant_id: str = tenant_id_field()
    menu: str = Field(..., min_length=1, max_length=60, examples=["dinner"])
    name: str = Field(..., min_length=1, max_length=80, examples=["Pizza"])
    position: int = Field(default=0, ge=0, le=1000)


class SectionUpdate(RequestModel):
    """PATCH /dashboard/sections/{section_id}: rename, move or reorder."""
    tenant_id: str = tenant_id_field()
    menu: Optional[str] = Field(None, min_length=1, max_length=60)
    name: Optional[str] = Field(None, min_length=1, max_length=80)
    position: Optional[int] = Field(None, ge=0, le=1000)

    @model_validator(mode="after")
    def at_least_one_change(self) -> "SectionUpdate":
        changes = self.changes()
        if not changes:
            raise ValueError("Provide at least one field to update")
        cleared = sorted(name for name, value in changes.items() if value is None)
        if cleared:
            raise ValueError(f"These fields cannot be null: {', '.join(cleared)}")
        return self

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set if name != "tenant_id"}

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        kwargs.setdefault("exclude_unset", True)
        return super().model_dump(**kwargs)


class SectionListQuery(RequestModel):
    tenant_id: str = tenant_id_field()
    menu: Optional[str] = Field(None, min_length=1, max_length=60)


class MenuItemCreate(RequestModel):
    """POST /dashboard/items"""
    tenant_id: str = tenant_id_field()
    section_id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=120, examples=["Margherita Pizza"])
    description: Optional[str] = Field(None, max_length=500)
    # strict: 19.99, 1999.0 and "1999" are all rejected
    price_cents: int = Field(..., ge=0, le=MAX_PRICE_CENTS, strict=True, examples=[1999])
    currency: Optional[str] = Field(None, examples=["SEK"])
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)
    is_available: bool = True

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return normalize_currency(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_tags(v)


class MenuItemUpdate(RequestModel):
    """PATCH /dashboard/items/{item_id}: partial, at least one field."""
    tenant_id: str = tenant_id_field()
    section_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    price_cents: Optional[int] = Field(None, ge=0, le=MAX_PRICE_CENTS, strict=True)
    currency: Optional[str] = None
    tags: Optional[List[str]] = Field(None, max_length=MAX_TAGS)
    is_available: Optional[bool] = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return normalize_currency(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return normalize_tags(v)

    @model_validator(mode="after")
    def at_least_one_change(self) -> "MenuItemUpdate":
        changes = self.changes()
        if not changes:
            raise ValueError("Provide at least one field to update")
        cleared = sorted(name for name in NON_NULLABLE_ITEM_FIELDS if name in changes and changes[name] is None)
        if cleared:
            raise ValueError(f"These fields cannot be null: {', '.join(cleared)}")
        return self

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually supplied, excluding the tenant id."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "tenant_id"
        }

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        # Unsupplied fields stay absent so a dump validates back to the same patch
        kwargs.setdefault("exclude_unset", True)
        return super().model_dump(**kwargs)


class ItemListQuery(RequestModel):
    tenant_id: str = tenant_id_field()
    section_id: Optional[uuid.UUID] = None


class OrderListQuery(RequestModel):
    tenant_id: str = tenant_id_field()
    status: Optional[OrderStatus] = None
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class OrderStatusUpdate(RequestModel):
    """PATCH /dashboard/orders/{order_id}/status"""
    tenant_id: str = tenant_id_field()
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


# =============================================================================
# READ MODELS
# =============================================================================

class MenuItemView(ViewModel):
    """Immutable menu item snapshot used by the menu and chat endpoints."""
    id: str
    section_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price_cents: int = Field(..., ge=0)
    currency: str
    tags: List[str] = Field(default_factory=list)
    is_available: bool = True


class CardView(ViewModel):
    """Menu item as shown in a chat reply."""
    id: str
    name: str
    description: Optional[str] = None
    price_cents: int
    currency: str
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_item(cls, item: MenuItemView) -> "CardView":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price_cents=item.price_cents,
            currency=item.currency,
            tags=list(item.tags),
        )


class ChatReply(ViewModel):
    text: str = Field(..., min_length=1, max_length=450)
    chips: List[str] = Field(default_factory=list, max_length=5)
    cards: List[CardView] = Field(default_factory=list, max_length=3)


class SectionView(ViewModel):
    id: str
    menu: str
    name: str
    position: int = 0


class MenuSectionGroup(ViewModel):
    """A section with its items, as returned by GET /menu."""
    id: Optional[str] = None
    name: str
    menu: Optional[str] = None
    items: List[MenuItemView] = Field(default_factory=list)


class OrderLineView(ViewModel):
    item_id: str
    name: str
    qty: int
    price_cents: int


class OrderSummaryView(ViewModel):
    """Public order status, safe to show to the widget."""
    order_id: str
    order_code: str
    status: OrderStatus
    total_cents: int
    currency: str

    @classmethod
    def from_order(cls, order: Any) -> "OrderSummaryView":
        return cls(
            order_id=order.id,
            order_code=order.order_code,
            status=order.status,
            total_cents=order.total_cents,
            currency=order.currency,
        )


class OrderView(OrderSummaryView):
    """Full order as seen by restaurant staff."""
    type: OrderType
    session_id: Optional[str] = None
    lines: List[OrderLineView] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Any) -> "OrderView":
        return cls(
            order_id=order.id,
            order_code=order.order_code,
            status=order.status,
            total_cents=order.total_cents,
            currency=order.currency,
            type=order.type,
            session_id=order.session_id,
            lines=[
                OrderLineView(item_id=line.item_id, name=line.name, qty=line.qty, price_cents=line.price_cents)
                for line in order.lines
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListView(ViewModel):
    total: int
    orders: List[OrderView]


class HealthView(ViewModel):
    status: str = Field(..., examples=["operational"])
    database: str
    environment: str
    version: str
    timestamp: datetime
