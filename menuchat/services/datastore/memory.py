"""
In-Memory Datastore

Keeps tenants, sessions, menus and orders in process memory.
Used for local development without PostgreSQL and by the test suite.

Data is lost on restart. Mutations are serialized with an asyncio.Lock
so compare-and-set and uniqueness behave like the SQL backend.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from menuchat.core.errors import ConflictError
from menuchat.models import OrderStatus
from menuchat.schemas import MenuItemView
from menuchat.services.datastore.base import (
    BaseDataStore,
    MenuSection,
    NewOrder,
    Order,
    Tenant,
    WidgetSession,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryDataStore(BaseDataStore):
    """In-process datastore for development and tests."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self.tenants: dict[str, Tenant] = {}
        self.sessions: dict[str, WidgetSession] = {}
        self._session_hashes: dict[tuple[str, str], str] = {}
        self.sections: dict[str, MenuSection] = {}
        self.items: dict[str, tuple[str, MenuItemView]] = {}
        self.orders: dict[str, Order] = {}
        self.fail_with: Optional[Exception] = None
        logger.info("MemoryDataStore initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    def _check_failure(self) -> None:
        """Raise the configured fault, if any (lets tests simulate outages)."""
        if self.fail_with is not None:
            raise self.fail_with

    async def ping(self) -> bool:
        return self.fail_with is None

    # =========================================================================
    # SEEDING (tenants are created by onboarding, outside this service)
    # =========================================================================

    def add_tenant(
        self,
        name: str = "Demo Restaurant",
        tenant_id: Optional[str] = None,
        is_active: bool = True,
        is_verified: bool = True,
        allowed_origins: Sequence[str] = (),
    ) -> Tenant:
        tenant = Tenant(
            id=(tenant_id or str(uuid.uuid4())).lower(),
            name=name,
            is_active=is_active,
            is_verified=is_verified,
            allowed_origins=tuple(allowed_origins),
        )
        self.tenants[tenant.id] = tenant
        return tenant

    def add_item(self, tenant_id: str, **values: Any) -> MenuItemView:
        item = MenuItemView(id=values.pop("id", None) or str(uuid.uuid4()), **values)
        self.items[item.id] = (tenant_id, item)
        return item

    # =========================================================================
    # TENANTS & SESSIONS
    # =========================================================================

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        self._check_failure()
        return self.tenants.get(tenant_id)

    async def create_session(
        self,
        tenant_id: str,
        token_hash: str,
        origin: Optional[str] = None,
        locale: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> WidgetSession:
        self._check_failure()
        async with self._lock:
            if any(h == token_hash for (_, h) in self._session_hashes):
                raise ConflictError(message="Session token already registered")
            now = _now()
            session = WidgetSession(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                origin=origin,
                locale=locale,
                user_agent=user_agent,
                created_at=now,
                last_seen_at=now,
            )
            self.sessions[session.id] = session
            self._session_hashes[(tenant_id, token_hash)] = session.id
            return session

    async def find_session(self, tenant_id: str, token_hash: str) -> Optional[WidgetSession]:
        self._check_failure()
        session_id = self._session_hashes.get((tenant_id, token_hash))
        return self.sessions.get(session_id) if session_id else None

    async def touch_session(self, session_id: str) -> None:
        self._check_failure()
        async with self._lock:
            session = self.sessions.get(session_id)
            if session:
                self.sessions[session_id] = replace(session, last_seen_at=_now())

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_sections(self, tenant_id: str, menu: Optional[str] = None) -> list[MenuSection]:
        self._check_failure()
        sections = [
            s for s in self.sections.values()
            if s.tenant_id == tenant_id and (menu is None or s.menu == menu)
        ]
        return sorted(sections, key=lambda s: (s.menu, s.position, s.name))

    async def create_section(self, tenant_id: str, menu: str, name: str, position: int = 0) -> MenuSection:
        self._check_failure()
        async with self._lock:
            for s in self.sections.values():
                if (s.tenant_id, s.menu, s.name) == (tenant_id, menu, name):
                    raise ConflictError(message=f"Section '{name}' already exists in menu '{menu}'")
            section = MenuSection(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                menu=menu,
                name=name,
                position=position,
            )
            self.sections[section.id] = section
            return section

    async def update_section(self, tenant_id: str, section_id: str, changes: dict[str, Any]) -> Optional[MenuSection]:
        self._check_failure()
        async with self._lock:
            section = self.sections.get(section_id)
            if not section or section.tenant_id != tenant_id:
                return None
            updated = replace(section, **changes)
            for s in self.sections.values():
                if s.id != section_id and (s.tenant_id, s.menu, s.name) == (tenant_id, updated.menu, updated.name):
                    raise ConflictError(message=f"Section '{updated.name}' already exists in menu '{updated.menu}'")
            self.sections[section_id] = updated
            return updated

    async def delete_section(self, tenant_id: str, section_id: str) -> bool:
        self._check_failure()
        async with self._lock:
            section = self.sections.get(section_id)
            if not section or section.tenant_id != tenant_id:
                return False
            for item_id, (owner, item) in list(self.items.items()):
                if item.section_id == section_id:
                    self.items[item_id] = (owner, item.model_copy(update={"section_id": None}))
            del self.sections[section_id]
            return True

    async def list_menu_items(
        self,
        tenant_id: str,
        section_id: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MenuItemView]:
        self._check_failure()
        return [
            item for owner, item in self.items.values()
            if owner == tenant_id
            and (section_id is None or item.section_id == section_id)
            and (item.is_available or not available_only)
        ]

    async def get_menu_items(self, tenant_id: str, item_ids: Sequence[str]) -> list[MenuItemView]:
        self._check_failure()
        wanted = set(item_ids)
        return [
            item for owner, item in self.items.values()
            if owner == tenant_id and item.id in wanted
        ]

    async def create_menu_item(self, tenant_id: str, values: dict[str, Any]) -> MenuItemView:
        self._check_failure()
        async with self._lock:
            return self.add_item(tenant_id, **values)

    async def update_menu_item(self, tenant_id: str, item_id: str, changes: dict[str, Any]) -> Optional[MenuItemView]:
        self._check_failure()
        async with self._lock:
            entry = self.items.get(item_id)
            if not entry or entry[0] != tenant_id:
                return None
            updated = entry[1].model_copy(update=changes)
            self.items[item_id] = (tenant_id, updated)
            return updated

    async def delete_menu_item(self, tenant_id: str, item_id: str) -> bool:
        self._check_failure()
        async with self._lock:
            entry = self.items.get(item_id)
            if not entry or entry[0] != tenant_id:
                return False
            del self.items[item_id]
            return True

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def create_order(self, order: NewOrder) -> Order:
        self._check_failure()
        async with self._lock:
            for existing in self.orders.values():
                if (existing.tenant_id, existing.order_code) == (order.tenant_id, order.order_code):
                    raise ConflictError(message=f"Order code {order.order_code} already used")
            now = _now()
            created = Order(
                id=str(uuid.uuid4()),
                tenant_id=order.tenant_id,
                session_id=order.session_id,
                order_code=order.order_code,
                type=order.type,
                status=OrderStatus.PENDING,
                total_cents=order.total_cents,
                currency=order.currency,
                lines=tuple(order.lines),
                created_at=now,
                updated_at=now,
            )
            self.orders[created.id] = created
            return created

    async def get_order(self, tenant_id: str, order_id: str) -> Optional[Order]:
        self._check_failure()
        order = self.orders.get(order_id)
        return order if order and order.tenant_id == tenant_id else None

    async def list_orders(
        self,
        tenant_id: str,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Order]]:
        self._check_failure()
        matching = [
            o for o in self.orders.values()
            if o.tenant_id == tenant_id and (status is None or o.status == status)
        ]
        # dicts keep insertion order, so reversing gives newest first
        matching.reverse()
        return len(matching), matching[skip:skip + limit]

    async def update_order_status(
        self,
        tenant_id: str,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
    ) -> Optional[Order]:
        self._check_failure()
        async with self._lock:
            order = self.orders.get(order_id)
            if not order or order.tenant_id != tenant_id or order.status != expected:
                return None
            updated = replace(order, status=new_status, updated_at=_now())
            self.orders[order_id] = updated
            return updated
