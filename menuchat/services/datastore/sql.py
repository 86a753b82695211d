"""
SQL Datastore

Production datastore over SQLAlchemy's async engine (PostgreSQL via
psycopg). Each operation is a single short unit of work; retries and
locking are left to the database.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError

from menuchat.core.errors import ConflictError
from menuchat.database import Database
from menuchat.models import (
    MenuItem as MenuItemRow,
    MenuSection as MenuSectionRow,
    Order as OrderRow,
    OrderItem as OrderItemRow,
    OrderStatus,
    Restaurant,
    WidgetSession as WidgetSessionRow,
)
from menuchat.schemas import MenuItemView
from menuchat.services.datastore.base import (
    BaseDataStore,
    MenuSection,
    NewOrder,
    Order,
    OrderLine,
    Tenant,
    WidgetSession,
)

logger = logging.getLogger(__name__)


def _uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# ROW MAPPERS
# =============================================================================

def _tenant(row: Restaurant) -> Tenant:
    return Tenant(
        id=str(row.id),
        name=row.name,
        is_active=bool(row.is_active),
        is_verified=bool(row.is_verified),
        allowed_origins=tuple(row.allowed_origins or ()),
    )


def _session(row: WidgetSessionRow) -> WidgetSession:
    return WidgetSession(
        id=str(row.id),
        tenant_id=str(row.restaurant_id),
        origin=row.origin,
        locale=row.locale,
        user_agent=row.user_agent,
        created_at=row.created_at,
        last_seen_at=row.last_seen_at,
    )


def _section(row: MenuSectionRow) -> MenuSection:
    return MenuSection(
        id=str(row.id),
        tenant_id=str(row.restaurant_id),
        menu=row.menu,
        name=row.name,
        position=row.position,
    )


def _item(row: MenuItemRow) -> MenuItemView:
    return MenuItemView(
        id=str(row.id),
        section_id=str(row.section_id) if row.section_id else None,
        name=row.name,
        description=row.description,
        price_cents=row.price_cents,
        currency=row.currency,
        tags=list(row.tags or []),
        is_available=bool(row.is_available),
    )


def _order(row: OrderRow) -> Order:
    return Order(
        id=str(row.id),
        tenant_id=str(row.restaurant_id),
        session_id=str(row.session_id) if row.session_id else None,
        order_code=row.order_code,
        type=row.type,
        status=row.status,
        total_cents=row.total_cents,
        currency=row.currency,
        lines=tuple(
            OrderLine(
                item_id=str(line.item_id),
                name=line.name,
                qty=line.qty,
                price_cents=line.price_cents,
            )
            for line in row.lines
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDataStore(BaseDataStore):
    """Datastore backed by the relational database."""

    def __init__(self, database: Database):
        self.database = database
        logger.info("SqlDataStore initialized")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def ping(self) -> bool:
        try:
            async with self.database.session_maker() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.database.dispose()

    # =========================================================================
    # TENANTS & SESSIONS
    # =========================================================================

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        key = _uuid(tenant_id)
        if key is None:
            return None
        async with self.database.session_maker() as session:
            row = await session.get(Restaurant, key)
            return _tenant(row) if row else None

    async def create_session(
        self,
        tenant_id: str,
        token_hash: str,
        origin: Optional[str] = None,
        locale: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> WidgetSession:
        async with self.database.session_maker() as session:
            row = WidgetSessionRow(
                restaurant_id=uuid.UUID(tenant_id),
                session_token_hash=token_hash,
                origin=origin,
                locale=locale,
                user_agent=user_agent,
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Session insert conflict: {e.orig}") from e
            await session.refresh(row)
            return _session(row)

    async def find_session(self, tenant_id: str, token_hash: str) -> Optional[WidgetSession]:
        key = _uuid(tenant_id)
        if key is None:
            return None
        async with self.database.session_maker() as session:
            result = await session.execute(
                select(WidgetSessionRow)
                .where(WidgetSessionRow.restaurant_id == key)
                .where(WidgetSessionRow.session_token_hash == token_hash)
                .order_by(WidgetSessionRow.created_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _session(row) if row else None

    async def touch_session(self, session_id: str) -> None:
        async with self.database.session_maker() as session:
            await session.execute(
                update(WidgetSessionRow)
                .where(WidgetSessionRow.id == uuid.UUID(session_id))
                .values(last_seen_at=datetime.now(timezone.utc))
            )
            await session.commit()

    # =========================================================================
    # MENU
    # =========================================================================

    async def list_sections(self, tenant_id: str, menu: Optional[str] = None) -> list[MenuSection]:
        query = (
            select(MenuSectionRow)
            .where(MenuSectionRow.restaurant_id == uuid.UUID(tenant_id))
            .order_by(MenuSectionRow.menu, MenuSectionRow.position, MenuSectionRow.name)
        )
        if menu is not None:
            query = query.where(MenuSectionRow.menu == menu)
        async with self.database.session_maker() as session:
            result = await session.execute(query)
            return [_section(row) for row in result.scalars().all()]

    async def create_section(self, tenant_id: str, menu: str, name: str, position: int = 0) -> MenuSection:
        async with self.database.session_maker() as session:
            row = MenuSectionRow(
                restaurant_id=uuid.UUID(tenant_id),
                menu=menu,
                name=name,
                position=position,
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Section '{name}' already exists in menu '{menu}'") from e
            await session.refresh(row)
            return _section(row)

    async def _find_section(self, session, tenant_id: str, section_id: str) -> Optional[MenuSectionRow]:
        key = _uuid(section_id)
        if key is None:
            return None
        result = await session.execute(
            select(MenuSectionRow)
            .where(MenuSectionRow.id == key)
            .where(MenuSectionRow.restaurant_id == uuid.UUID(tenant_id))
        )
        return result.scalar_one_or_none()

    async def update_section(self, tenant_id: str, section_id: str, changes: dict[str, Any]) -> Optional[MenuSection]:
        async with self.database.session_maker() as session:
            row = await self._find_section(session, tenant_id, section_id)
            if row is None:
                return None
            for name, value in changes.items():
                setattr(row, name, value)
            menu, name = row.menu, row.name
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Section '{name}' already exists in menu '{menu}'") from e
            await session.refresh(row)
            return _section(row)

    async def delete_section(self, tenant_id: str, section_id: str) -> bool:
        async with self.database.session_maker() as session:
            row = await self._find_section(session, tenant_id, section_id)
            if row is None:
                return False
            # Items outlive their section
            await session.execute(
                update(MenuItemRow)
                .where(MenuItemRow.section_id == row.id)
                .values(section_id=None)
            )
            await session.delete(row)
            await session.commit()
            return True

    async def list_menu_items(
        self,
        tenant_id: str,
        section_id: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MenuItemView]:
        query = (
            select(MenuItemRow)
            .where(MenuItemRow.restaurant_id == uuid.UUID(tenant_id))
            .order_by(MenuItemRow.created_at, MenuItemRow.name)
        )
        if section_id is not None:
            query = query.where(MenuItemRow.section_id == uuid.UUID(section_id))
        if available_only:
            query = query.where(MenuItemRow.is_available.is_(True))
        async with self.database.session_maker() as session:
            result = await session.execute(query)
            return [_item(row) for row in result.scalars().all()]

    async def get_menu_items(self, tenant_id: str, item_ids: Sequence[str]) -> list[MenuItemView]:
        keys = [k for k in (_uuid(i) for i in item_ids) if k is not None]
        if not keys:
            return []
        async with self.database.session_maker() as session:
            result = await session.execute(
                select(MenuItemRow)
                .where(MenuItemRow.restaurant_id == uuid.UUID(tenant_id))
                .where(MenuItemRow.id.in_(keys))
            )
            return [_item(row) for row in result.scalars().all()]

    async def create_menu_item(self, tenant_id: str, values: dict[str, Any]) -> MenuItemView:
        values = dict(values)
        if values.get("section_id"):
            values["section_id"] = uuid.UUID(values["section_id"])
        async with self.database.session_maker() as session:
            row = MenuItemRow(restaurant_id=uuid.UUID(tenant_id), **values)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Menu item insert conflict: {e.orig}") from e
            await session.refresh(row)
            return _item(row)

    async def update_menu_item(self, tenant_id: str, item_id: str, changes: dict[str, Any]) -> Optional[MenuItemView]:
        key = _uuid(item_id)
        if key is None:
            return None
        changes = dict(changes)
        if changes.get("section_id"):
            changes["section_id"] = uuid.UUID(changes["section_id"])
        async with self.database.session_maker() as session:
            result = await session.execute(
                select(MenuItemRow)
                .where(MenuItemRow.id == key)
                .where(MenuItemRow.restaurant_id == uuid.UUID(tenant_id))
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            for name, value in changes.items():
                setattr(row, name, value)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Menu item update conflict: {e.orig}") from e
            await session.refresh(row)
            return _item(row)

    async def delete_menu_item(self, tenant_id: str, item_id: str) -> bool:
        key = _uuid(item_id)
        if key is None:
            return False
        async with self.database.session_maker() as session:
            result = await session.execute(
                select(MenuItemRow)
                .where(MenuItemRow.id == key)
                .where(MenuItemRow.restaurant_id == uuid.UUID(tenant_id))
            )
            row = result.scalar_one_or_none()
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def create_order(self, order: NewOrder) -> Order:
        async with self.database.session_maker() as session:
            row = OrderRow(
                restaurant_id=uuid.UUID(order.tenant_id),
                session_id=uuid.UUID(order.session_id) if order.session_id else None,
                order_code=order.order_code,
                type=order.type,
                status=OrderStatus.PENDING,
                total_cents=order.total_cents,
                currency=order.currency,
                lines=[
                    OrderItemRow(
                        item_id=uuid.UUID(line.item_id),
                        name=line.name,
                        qty=line.qty,
                        price_cents=line.price_cents,
                    )
                    for line in order.lines
                ],
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(message=f"Order code {order.order_code} already used") from e
            order_id = row.id

        # Fresh session so the selectin-loaded lines come back with the row
        return await self._load_order(order_id)

    async def _load_order(self, order_id: uuid.UUID, tenant_id: Optional[str] = None) -> Optional[Order]:
        query = select(OrderRow).where(OrderRow.id == order_id)
        if tenant_id is not None:
            query = query.where(OrderRow.restaurant_id == uuid.UUID(tenant_id))
        async with self.database.session_maker() as session:
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return _order(row) if row else None

    async def get_order(self, tenant_id: str, order_id: str) -> Optional[Order]:
        key = _uuid(order_id)
        if key is None:
            return None
        return await self._load_order(key, tenant_id)

    async def list_orders(
        self,
        tenant_id: str,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Order]]:
        tenant_key = uuid.UUID(tenant_id)
        query = (
            select(OrderRow)
            .where(OrderRow.restaurant_id == tenant_key)
            .order_by(OrderRow.created_at.desc())
        )
        count_query = select(func.count(OrderRow.id)).where(OrderRow.restaurant_id == tenant_key)

        if status is not None:
            query = query.where(OrderRow.status == status)
            count_query = count_query.where(OrderRow.status == status)

        async with self.database.session_maker() as session:
            total_result = await session.execute(count_query)
            total = total_result.scalar() or 0

            result = await session.execute(query.offset(skip).limit(limit))
            return total, [_order(row) for row in result.scalars().all()]

    async def update_order_status(
        self,
        tenant_id: str,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
    ) -> Optional[Order]:
        key = _uuid(order_id)
        if key is None:
            return None
        async with self.database.session_maker() as session:
            result = await session.execute(
                update(OrderRow)
                .where(OrderRow.id == key)
                .where(OrderRow.restaurant_id == uuid.UUID(tenant_id))
                .where(OrderRow.status == expected)
                .values(status=new_status, updated_at=datetime.now(timezone.utc))
            )
            await session.commit()
            if result.rowcount == 0:
                return None
        return await self._load_order(key, tenant_id)
