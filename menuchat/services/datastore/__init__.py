"""
Datastore Factory

Returns the SQL or in-memory datastore based on DATASTORE_BACKEND.
The application factory calls this once and injects the result;
there is no module-level client.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from menuchat.core.config import DatastoreBackend, Settings
from menuchat.database import Database
from menuchat.services.datastore.base import (
    BaseDataStore,
    MenuSection,
    NewOrder,
    Order,
    OrderLine,
    Tenant,
    WidgetSession,
)
from menuchat.services.datastore.memory import MemoryDataStore
from menuchat.services.datastore.sql import SqlDataStore

logger = logging.getLogger(__name__)


def build_datastore(settings: Settings) -> BaseDataStore:
    """Construct the configured datastore."""
    if settings.datastore_backend == DatastoreBackend.MEMORY:
        logger.info("Datastore: Using MemoryDataStore")
        return MemoryDataStore()

    logger.info(f"Datastore: Using SqlDataStore ({settings.env_mode.value} mode)")
    return SqlDataStore(Database.from_settings(settings))


__all__ = [
    "build_datastore",
    "BaseDataStore",
    "MemoryDataStore",
    "SqlDataStore",
    "MenuSection",
    "NewOrder",
    "Order",
    "OrderLine",
    "Tenant",
    "WidgetSession",
]
