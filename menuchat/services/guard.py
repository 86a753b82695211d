"""
Origin/Session Guard

Decides whether a widget request may act on a tenant:

1. Inactive tenants are rejected (TENANT_INACTIVE).
2. A non-empty origin allowlist must contain the request origin, with or
   without one trailing slash (ORIGIN_NOT_ALLOWED). An empty allowlist
   means any origin.
3. A supplied session token must match a session of this tenant
   (SESSION_INVALID). A session whose recorded origin differs from the
   request origin is logged and still accepted.

Rejections are returned, never raised. Datastore faults propagate.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from menuchat.core.errors import ErrorCode, Rejected
from menuchat.services.datastore.base import BaseDataStore, Tenant, WidgetSession
from menuchat.services.sessions import hash_session_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authorized:
    tenant: Tenant
    session: Optional[WidgetSession] = None


def origin_candidates(origin: Optional[str]) -> set[str]:
    """The origin as sent, plus the same origin without a trailing slash."""
    if not origin:
        return set()
    candidates = {origin}
    if origin.endswith("/"):
        candidates.add(origin[:-1])
    return candidates


def origin_allowed(allowed_origins: Iterable[str], origin: Optional[str]) -> bool:
    allowed = set(allowed_origins)
    if not allowed:
        return True
    return bool(origin_candidates(origin) & allowed)


class OriginSessionGuard:
    """Authorizes widget requests against a tenant's settings and sessions."""

    def __init__(self, datastore: BaseDataStore):
        self.datastore = datastore

    async def authorize(
        self,
        tenant: Tenant,
        origin: Optional[str],
        session_token: Optional[str] = None,
    ) -> Union[Authorized, Rejected]:
        if not tenant.is_active:
            logger.info(f"Rejected request for inactive tenant {tenant.id}")
            return Rejected(ErrorCode.TENANT_INACTIVE)

        if not origin_allowed(tenant.allowed_origins, origin):
            logger.info(f"Rejected origin {origin!r} for tenant {tenant.id}")
            return Rejected(ErrorCode.ORIGIN_NOT_ALLOWED)

        if session_token is None:
            return Authorized(tenant=tenant)

        session = await self.datastore.find_session(tenant.id, hash_session_token(session_token))
        if session is None:
            logger.info(f"Unknown session token for tenant {tenant.id}")
            return Rejected(ErrorCode.SESSION_INVALID)

        if session.origin and origin and session.origin not in origin_candidates(origin):
            logger.warning(
                f"Session {session.id} created from {session.origin!r} "
                f"now used from {origin!r}; allowing"
            )

        await self.datastore.touch_session(session.id)
        return Authorized(tenant=tenant, session=session)
