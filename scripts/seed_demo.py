"""
Demo Seed Script

Creates the tables (if missing), a demo restaurant and a small menu in
the configured SQL database, then prints the tenant id for the widget.
Run from project root: python scripts/seed_demo.py

Author: Khalil Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import sys
import uuid

from sqlalchemy import select

from menuchat.core.config import get_settings, setup_logging
from menuchat.core.errors import ConflictError
from menuchat.database import Database
from menuchat.models import Restaurant
from menuchat.services.datastore import SqlDataStore

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

DEMO_TENANT_ID = "5f0c6a52-8a9e-4c57-9d61-3f1e2b7c4a10"

DEMO_MENU = {
    "Pizza": [
        {"name": "Margherita Pizza", "description": "Tomato, mozzarella, basil", "price_cents": 12900, "tags": ["popular"]},
        {"name": "Pasta Carbonara", "description": "Guanciale, egg, pecorino", "price_cents": 14500, "tags": []},
    ],
    "Curries": [
        {"name": "Chana Masala", "description": "Chickpeas in spiced tomato gravy", "price_cents": 13500, "tags": ["vegan"]},
        {"name": "Chicken Tikka", "description": "Tandoori chicken, mint yoghurt", "price_cents": 15900, "tags": ["signature"]},
    ],
    "Sides": [
        {"name": "Side Salad", "description": "Leaves, cucumber, lemon dressing", "price_cents": 4900, "tags": ["vegan"]},
        {"name": "Garlic Naan", "description": None, "price_cents": 3900, "tags": []},
    ],
}


async def seed(origins: list[str]) -> str:
    settings = get_settings()
    database = Database.from_settings(settings)
    await database.create_all()

    tenant_key = uuid.UUID(DEMO_TENANT_ID)
    async with database.session_maker() as session:
        result = await session.execute(select(Restaurant).where(Restaurant.id == tenant_key))
        if result.scalar_one_or_none() is None:
            session.add(Restaurant(
                id=tenant_key,
                name="Trattoria Demo",
                is_active=True,
                is_verified=True,
                allowed_origins=origins,
            ))
            await session.commit()
            print(f"✅ Restaurant created: {DEMO_TENANT_ID}")
        else:
            print(f"ℹ️  Restaurant already exists: {DEMO_TENANT_ID}")

    store = SqlDataStore(database)
    for position, (section_name, items) in enumerate(DEMO_MENU.items()):
        try:
            section = await store.create_section(DEMO_TENANT_ID, "dinner", section_name, position)
        except ConflictError:
            print(f"ℹ️  Section '{section_name}' already seeded, skipping")
            continue
        for item in items:
            await store.create_menu_item(DEMO_TENANT_ID, {
                **item,
                "section_id": section.id,
                "currency": settings.default_currency,
                "is_available": True,
            })
        print(f"✅ Section '{section_name}' with {len(items)} items")

    await store.close()
    return DEMO_TENANT_ID


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo restaurant")
    parser.add_argument(
        "--origin",
        action="append",
        default=[],
        help="Allowed widget origin (repeatable; none means any origin)",
    )
    args = parser.parse_args()

    setup_logging()
    tenant_id = asyncio.run(seed(args.origin))

    print("=" * 60)
    print(f"🍕 Demo tenant id: {tenant_id}")
    print("=" * 60)
