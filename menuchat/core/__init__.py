"""
Core module initialization.
Exports configuration, error vocabulary and envelope helpers.
"""

from menuchat.core.config import get_settings, Settings, EnvironmentMode, DatastoreBackend
from menuchat.core.errors import ErrorCode, Rejected, ApiError

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "DatastoreBackend",
    "ErrorCode",
    "Rejected",
    "ApiError",
]
