"""
Tenant Context Resolver

Turns the raw restaurant id carried by a request into a tenant id, or a
rejection when it is not a canonical UUID. Existence is not checked here;
the domain operation that follows looks the tenant up.
"""

import re
from typing import Any, Union

from menuchat.core.errors import ErrorCode, Rejected

# 8-4-4-4-12 hex, version nibble 1-5, variant nibble 8/9/a/b
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

TenantId = str


def is_valid_uuid(raw: Any) -> bool:
    return isinstance(raw, str) and UUID_PATTERN.fullmatch(raw) is not None


def resolve_tenant(raw_id: Any) -> Union[TenantId, Rejected]:
    """
    Validate a raw tenant id.

    Returns:
        The lower-cased canonical id, or Rejected(INVALID_TENANT_ID)
    """
    if not is_valid_uuid(raw_id):
        return Rejected(ErrorCode.INVALID_TENANT_ID)
    return raw_id.lower()
