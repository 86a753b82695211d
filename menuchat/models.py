"""
SQLAlchemy Database Models

Tables backing the SQL datastore:
- Restaurants (tenants) with their origin allowlist
- Widget sessions, stored by token digest only
- Menu sections and items, prices in minor currency units
- Orders and their lines

The schema is owned by migrations in staging/production; create_all is
only used for development and tests.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from menuchat.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PAID = "paid"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class OrderType(str, enum.Enum):
    """How the guest receives the order."""
    PICKUP = "pickup"
    DINE_IN = "dine_in"


class Restaurant(Base):
    """
    Tenant record. Created at onboarding, read-only for this service.

    An empty allowed_origins list means any origin may embed the widget.
    """
    __tablename__ = "restaurants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    allowed_origins = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.name}>"


class WidgetSession(Base):
    """One row per widget page-load."""
    __tablename__ = "widget_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False, index=True)
    session_token_hash = Column(String(64), nullable=False, unique=True, index=True)
    origin = Column(String(255), nullable=True)
    user_agent = Column(String(500), nullable=True)
    locale = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_seen_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<WidgetSession {self.id} - restaurant {self.restaurant_id}>"


class MenuSection(Base):
    __tablename__ = "menu_sections"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "menu", "name", name="uq_menu_sections_restaurant_menu_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False, index=True)
    menu = Column(String(60), nullable=False)
    name = Column(String(80), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<MenuSection {self.menu}/{self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False, index=True)
    section_id = Column(Uuid, ForeignKey("menu_sections.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="SEK")
    tags = Column(JSON, default=list, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price_cents} {self.currency}>"


class Order(Base):
    """
    Orders placed through the widget.

    status moves along the transitions in menuchat.services.orders and is
    updated with a compare-and-set on the previous value.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_code", name="uq_orders_restaurant_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("widget_sessions.id"), nullable=True)
    order_code = Column(String(8), nullable=False)
    type = Column(Enum(OrderType), nullable=False)
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    total_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    lines = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order {self.order_code} - {self.status.value} - {self.total_cents} {self.currency}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid, nullable=False)
    name = Column(String(120), nullable=False)
    qty = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="lines")
