"""
Route Dependencies

Shared plumbing for every router: access to the injected datastore and
settings, body parsing, and the tenant-scoped request contract

    validate payload -> resolve tenant id -> load tenant -> guard

Rejections from the resolver, guard and validator are raised here as
ApiError so the exception handlers render them.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import secrets
from typing import Any, Optional, Type, TypeVar, Union

from fastapi import Depends, Header, Request
from pydantic import BaseModel

from menuchat.core.config import Settings
from menuchat.core.errors import AuthorizationError, ErrorCode, NotFoundError, Rejected
from menuchat.services.datastore.base import BaseDataStore, Tenant
from menuchat.services.guard import OriginSessionGuard
from menuchat.services.tenancy import resolve_tenant
from menuchat.services.validation import validate

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


# =============================================================================
# APPLICATION STATE
# =============================================================================

def get_datastore(request: Request) -> BaseDataStore:
    return request.app.state.datastore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_guard(datastore: BaseDataStore = Depends(get_datastore)) -> OriginSessionGuard:
    return OriginSessionGuard(datastore)


# =============================================================================
# REQUEST CONTRACT
# =============================================================================

async def read_json(request: Request) -> Any:
    """Parsed JSON body, or None when the body is empty or not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


def query_params(request: Request) -> dict[str, str]:
    return dict(request.query_params)


def unwrap(result: Union[Any, Rejected]) -> Any:
    if isinstance(result, Rejected):
        raise result.to_error()
    return result


def validated(raw: Any, schema: Type[T]) -> T:
    """Validate a payload or raise BAD_REQUEST with its issue list."""
    return unwrap(validate(raw, schema)).data


async def load_tenant(datastore: BaseDataStore, raw_tenant_id: Any) -> Tenant:
    """
    Resolve and fetch the tenant a request targets.

    Raises:
        ApiError: INVALID_TENANT_ID for a malformed id
        NotFoundError: TENANT_NOT_FOUND when no such restaurant exists
    """
    tenant_id = unwrap(resolve_tenant(raw_tenant_id))
    tenant = await datastore.get_tenant(tenant_id)
    if tenant is None:
        raise NotFoundError(ErrorCode.TENANT_NOT_FOUND)
    return tenant


def request_origin(request: Request) -> Optional[str]:
    return request.headers.get("origin")


# =============================================================================
# DASHBOARD AUTH
# =============================================================================

def require_dashboard_key(
    settings: Settings = Depends(get_app_settings),
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Check the dashboard bearer key.

    Dashboard endpoints are open when DASHBOARD_API_KEY is unset.
    """
    expected = settings.dashboard_api_key
    if not expected:
        return

    scheme, _, supplied = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        supplied.strip().encode("utf-8"), expected.encode("utf-8")
    ):
        logger.info("Rejected dashboard request with missing or invalid key")
        raise AuthorizationError(ErrorCode.UNAUTHORIZED)
