"""
Widget Endpoints

Public endpoints used by the embeddable chat and ordering widget:

    - POST /sessions: Open a widget session for a restaurant
    - POST /chat:     Ask the menu assistant a question
    - GET  /menu:     Read the menu grouped by section

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from menuchat.api.deps import (
    get_app_settings,
    get_datastore,
    get_guard,
    load_tenant,
    query_params,
    read_json,
    request_origin,
    unwrap,
    validated,
)
from menuchat.core.config import Settings
from menuchat.core.envelope import ok_response
from menuchat.core.errors import AuthorizationError, ErrorCode, NotFoundError
from menuchat.schemas import ChatRequest, MenuItemView, MenuQuery, MenuSectionGroup, SessionCreate
from menuchat.services.datastore.base import BaseDataStore, MenuSection
from menuchat.services.guard import OriginSessionGuard
from menuchat.services.replies import reply
from menuchat.services.sessions import issue_session_token
from menuchat.services.tenancy import resolve_tenant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Widget"])

UNSECTIONED_NAME = "Other"


# =============================================================================
# SESSIONS
# =============================================================================

@router.post("/sessions", summary="Open Widget Session")
async def create_session(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
    guard: OriginSessionGuard = Depends(get_guard),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """
    Mint a session token for a widget visitor.

    The token is returned once in the body and as a convenience cookie;
    only its digest is stored.
    """
    payload = validated(await read_json(request), SessionCreate)
    tenant = await load_tenant(datastore, payload.tenant_id)
    origin = request_origin(request)
    unwrap(await guard.authorize(tenant, origin))

    token, digest = issue_session_token()
    session = await datastore.create_session(
        tenant.id,
        digest,
        origin=origin,
        locale=payload.locale,
        user_agent=request.headers.get("user-agent"),
    )
    logger.info(f"Session {session.id} opened for tenant {tenant.id} from {origin or 'unknown origin'}")

    response = ok_response({"sessionId": session.id, "sessionToken": token})
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_cookie_max_age,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )
    return response


# =============================================================================
# CHAT
# =============================================================================

@router.post("/chat", summary="Ask the Menu Assistant")
async def chat(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
    guard: OriginSessionGuard = Depends(get_guard),
) -> JSONResponse:
    """
    Answer a guest question with a deterministic reply over the menu.

    Validation, tenant and guard rejections return their envelopes. A
    datastore fault while loading the tenant, session or menu degrades to
    a reply over an empty menu instead of a 500.
    """
    payload = validated(await read_json(request), ChatRequest)
    tenant_id = unwrap(resolve_tenant(payload.tenant_id))
    origin = request_origin(request)

    try:
        tenant = await datastore.get_tenant(tenant_id)
    except Exception as e:
        logger.warning(f"Chat for tenant {tenant_id} degraded, tenant lookup failed: {e}")
        return _reply_response(payload.message, [])

    if tenant is None:
        raise NotFoundError(ErrorCode.TENANT_NOT_FOUND)

    try:
        authorized = await guard.authorize(tenant, origin, payload.session_token)
    except Exception as e:
        logger.warning(f"Chat for tenant {tenant_id} degraded, session check failed: {e}")
        return _reply_response(payload.message, [])

    unwrap(authorized)

    try:
        items = await datastore.list_menu_items(tenant.id, available_only=True)
    except Exception as e:
        logger.warning(f"Chat for tenant {tenant_id} degraded, menu fetch failed: {e}")
        items = []

    return _reply_response(payload.message, items)


def _reply_response(message: str, items: list[MenuItemView]) -> JSONResponse:
    answer = reply(message, items)
    return ok_response({"reply": answer.model_dump(by_alias=True, mode="json")})


# =============================================================================
# MENU
# =============================================================================

@router.get("/menu", summary="Read Menu")
async def get_menu(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """
    Menu items grouped by section, sections in display order.

    Query: tenantId, menu (optional), includeUnavailable (default false).
    Items without a section are listed last under "Other".
    """
    query = validated(query_params(request), MenuQuery)
    tenant = await load_tenant(datastore, query.tenant_id)
    if not tenant.is_active:
        raise AuthorizationError(ErrorCode.TENANT_INACTIVE)

    sections = await datastore.list_sections(tenant.id, menu=query.menu)
    items = await datastore.list_menu_items(tenant.id, available_only=not query.include_unavailable)

    groups = group_by_section(sections, items, include_unsectioned=query.menu is None)
    return ok_response({
        "sections": [group.model_dump(by_alias=True, mode="json") for group in groups],
    })


def group_by_section(
    sections: list[MenuSection],
    items: list[MenuItemView],
    include_unsectioned: bool = True,
) -> list[MenuSectionGroup]:
    """
    Group items under their sections, dropping sections with no items.

    Item order inside a group is the order the datastore returned.
    """
    by_section: dict[Optional[str], list[MenuItemView]] = {}
    for item in items:
        by_section.setdefault(item.section_id, []).append(item)

    groups = [
        MenuSectionGroup(id=section.id, name=section.name, menu=section.menu, items=by_section[section.id])
        for section in sections
        if by_section.get(section.id)
    ]

    if include_unsectioned and by_section.get(None):
        groups.append(MenuSectionGroup(id=None, name=UNSECTIONED_NAME, items=by_section[None]))

    return groups
