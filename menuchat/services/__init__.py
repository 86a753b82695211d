"""
                        Services Module

Business logic shared by every route, following one request contract:

    tenancy     -> resolve the restaurant id
    guard       -> tenant active, origin allowed, session valid
    validation  -> schema-validate and normalize the payload
    datastore   -> SQL or in-memory persistence, injected per app
    replies     -> deterministic chat replies over the menu
    orders      -> order pricing and status lifecycle
"""

from menuchat.services.guard import Authorized, OriginSessionGuard
from menuchat.services.replies import reply
from menuchat.services.tenancy import resolve_tenant
from menuchat.services.validation import ValidatedRequest, validate

__all__ = [
    "Authorized",
    "OriginSessionGuard",
    "ValidatedRequest",
    "reply",
    "resolve_tenant",
    "validate",
]
