"""
Datastore Abstract Base Class

Defines the single client interface every component receives explicitly.
Supports both SQL (PostgreSQL via SQLAlchemy) and in-memory
implementations.

Concurrency control is the datastore's job: unique constraints surface
as ConflictError, and order status updates are compare-and-set.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from menuchat.models import OrderStatus, OrderType
from menuchat.schemas import MenuItemView


@dataclass(frozen=True)
class Tenant:
    """A restaurant account; the unit of data isolation."""
    id: str
    name: str
    is_active: bool = True
    is_verified: bool = False
    allowed_origins: tuple[str, ...] = ()


@dataclass(frozen=True)
class WidgetSession:
    """A widget visitor's credential. The token itself is never stored."""
    id: str
    tenant_id: str
    origin: Optional[str] = None
    locale: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None


@dataclass(frozen=True)
class MenuSection:
    id: str
    tenant_id: str
    menu: str
    name: str
    position: int = 0


@dataclass(frozen=True)
class OrderLine:
    item_id: str
    name: str
    qty: int
    price_cents: int


@dataclass(frozen=True)
class Order:
    id: str
    tenant_id: str
    order_code: str
    type: OrderType
    status: OrderStatus
    total_cents: int
    currency: str
    session_id: Optional[str] = None
    lines: tuple[OrderLine, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class NewOrder:
    """Everything needed to insert an order and its lines."""
    tenant_id: str
    session_id: Optional[str]
    order_code: str
    type: OrderType
    total_cents: int
    currency: str
    lines: list[OrderLine] = field(default_factory=list)


class BaseDataStore(ABC):
    """Abstract base class for datastore clients."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check datastore connectivity."""
        pass

    async def close(self) -> None:
        """Release connections."""

    # =========================================================================
    # TENANTS & SESSIONS
    # =========================================================================

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        pass

    @abstractmethod
    async def create_session(
        self,
        tenant_id: str,
        token_hash: str,
        origin: Optional[str] = None,
        locale: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> WidgetSession:
        pass

    @abstractmethod
    async def find_session(self, tenant_id: str, token_hash: str) -> Optional[WidgetSession]:
        pass

    @abstractmethod
    async def touch_session(self, session_id: str) -> None:
        """Refresh last_seen_at."""
        pass

    # =========================================================================
    # MENU
    # =========================================================================

    @abstractmethod
    async def list_sections(self, tenant_id: str, menu: Optional[str] = None) -> list[MenuSection]:
        """Sections ordered by menu, position, name."""
        pass

    @abstractmethod
    async def create_section(self, tenant_id: str, menu: str, name: str, position: int = 0) -> MenuSection:
        """Raises ConflictError when (menu, name) already exists."""
        pass

    @abstractmethod
    async def update_section(self, tenant_id: str, section_id: str, changes: dict[str, Any]) -> Optional[MenuSection]:
        """None when the section is not this tenant's. Raises ConflictError on a duplicate (menu, name)."""
        pass

    @abstractmethod
    async def delete_section(self, tenant_id: str, section_id: str) -> bool:
        """Remove a section; its items stay on the menu without a section."""
        pass

    @abstractmethod
    async def list_menu_items(
        self,
        tenant_id: str,
        section_id: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MenuItemView]:
        """Items in insertion order."""
        pass

    @abstractmethod
    async def get_menu_items(self, tenant_id: str, item_ids: Sequence[str]) -> list[MenuItemView]:
        """Items of this tenant among item_ids; missing ids are simply absent."""
        pass

    @abstractmethod
    async def create_menu_item(self, tenant_id: str, values: dict[str, Any]) -> MenuItemView:
        pass

    @abstractmethod
    async def update_menu_item(self, tenant_id: str, item_id: str, changes: dict[str, Any]) -> Optional[MenuItemView]:
        """None when the item does not belong to the tenant."""
        pass

    @abstractmethod
    async def delete_menu_item(self, tenant_id: str, item_id: str) -> bool:
        pass

    # =========================================================================
    # ORDERS
    # =========================================================================

    @abstractmethod
    async def create_order(self, order: NewOrder) -> Order:
        """Raises ConflictError when the order code is already taken."""
        pass

    @abstractmethod
    async def get_order(self, tenant_id: str, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_orders(
        self,
        tenant_id: str,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Order]]:
        """(total, page) newest first."""
        pass

    @abstractmethod
    async def update_order_status(
        self,
        tenant_id: str,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
    ) -> Optional[Order]:
        """Compare-and-set. None when the current status is no longer `expected`."""
        pass
