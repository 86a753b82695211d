"""
Dashboard Endpoints

Staff-facing menu and order management. Every route requires the
dashboard bearer key when DASHBOARD_API_KEY is configured.

    - GET/POST    /dashboard/sections
    - PATCH/DELETE /dashboard/sections/{section_id}
    - GET/POST    /dashboard/items
    - PATCH/DELETE /dashboard/items/{item_id}
    - GET         /dashboard/orders
    - PATCH       /dashboard/orders/{order_id}/status

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from menuchat.api.deps import (
    get_app_settings,
    get_datastore,
    load_tenant,
    query_params,
    read_json,
    require_dashboard_key,
    validated,
)
from menuchat.core.config import Settings
from menuchat.core.envelope import ok_response
from menuchat.core.errors import ErrorCode, NotFoundError
from menuchat.schemas import (
    ItemListQuery,
    MenuItemCreate,
    MenuItemUpdate,
    OrderListQuery,
    OrderListView,
    OrderStatusUpdate,
    OrderView,
    SectionCreate,
    SectionListQuery,
    SectionUpdate,
    SectionView,
    TenantQuery,
)
from menuchat.services.datastore.base import BaseDataStore, MenuSection
from menuchat.services.orders import change_status

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
    dependencies=[Depends(require_dashboard_key)],
)


def _section_view(section: MenuSection) -> dict[str, Any]:
    return SectionView(
        id=section.id,
        menu=section.menu,
        name=section.name,
        position=section.position,
    ).model_dump(by_alias=True, mode="json")


async def _check_section(datastore: BaseDataStore, tenant_id: str, section_id: Optional[str]) -> None:
    """A referenced section must belong to the same restaurant."""
    if section_id is None:
        return
    sections = await datastore.list_sections(tenant_id)
    if not any(section.id == section_id for section in sections):
        raise NotFoundError(ErrorCode.NOT_FOUND, message=f"Section {section_id} not found")


# =============================================================================
# SECTIONS
# =============================================================================

@router.get("/sections", summary="List Sections")
async def list_sections(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    query = validated(query_params(request), SectionListQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    sections = await datastore.list_sections(tenant.id, menu=query.menu)
    return ok_response({"sections": [_section_view(s) for s in sections]})


@router.post("/sections", summary="Create Section")
async def create_section(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Add a section to a menu. (menu, name) must be unique per restaurant."""
    payload = validated(await read_json(request), SectionCreate)
    tenant = await load_tenant(datastore, payload.tenant_id)

    section = await datastore.create_section(tenant.id, payload.menu, payload.name, payload.position)
    logger.info(f"Section '{section.name}' created in menu '{section.menu}' for tenant {tenant.id}")
    return ok_response(_section_view(section), status_code=201)


@router.patch("/sections/{section_id}", summary="Update Section")
async def update_section(
    section_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Rename, reorder or move a section to another menu."""
    payload = validated(await read_json(request), SectionUpdate)
    tenant = await load_tenant(datastore, payload.tenant_id)

    section = await datastore.update_section(tenant.id, section_id, payload.changes())
    if section is None:
        raise NotFoundError(ErrorCode.NOT_FOUND, message=f"Section {section_id} not found")

    logger.info(f"Section {section_id} updated: {sorted(payload.changes())}")
    return ok_response(_section_view(section))


@router.delete("/sections/{section_id}", summary="Delete Section")
async def delete_section(
    section_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Delete a section. Its items remain on the menu, listed under "Other"."""
    query = validated(query_params(request), TenantQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    if not await datastore.delete_section(tenant.id, section_id):
        raise NotFoundError(ErrorCode.NOT_FOUND, message=f"Section {section_id} not found")

    logger.info(f"Section {section_id} deleted for tenant {tenant.id}")
    return ok_response({"id": section_id, "deleted": True})


# =============================================================================
# MENU ITEMS
# =============================================================================

@router.get("/items", summary="List Menu Items")
async def list_items(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """All items of a restaurant, unavailable ones included."""
    query = validated(query_params(request), ItemListQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    section_id = str(query.section_id) if query.section_id else None
    items = await datastore.list_menu_items(tenant.id, section_id=section_id)
    return ok_response({"items": [item.model_dump(by_alias=True, mode="json") for item in items]})


@router.post("/items", summary="Create Menu Item")
async def create_item(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """
    Create a menu item.

    priceCents must be an integer in minor units; currency defaults to
    DEFAULT_CURRENCY.
    """
    payload = validated(await read_json(request), MenuItemCreate)
    tenant = await load_tenant(datastore, payload.tenant_id)

    section_id = str(payload.section_id) if payload.section_id else None
    await _check_section(datastore, tenant.id, section_id)

    item = await datastore.create_menu_item(tenant.id, {
        "section_id": section_id,
        "name": payload.name,
        "description": payload.description,
        "price_cents": payload.price_cents,
        "currency": payload.currency or settings.default_currency,
        "tags": payload.tags,
        "is_available": payload.is_available,
    })
    logger.info(f"Menu item '{item.name}' created for tenant {tenant.id}")
    return ok_response(item.model_dump(by_alias=True, mode="json"), status_code=201)


@router.patch("/items/{item_id}", summary="Update Menu Item")
async def update_item(
    item_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Partial update; only the supplied fields change."""
    payload = validated(await read_json(request), MenuItemUpdate)
    tenant = await load_tenant(datastore, payload.tenant_id)

    changes = payload.changes()
    if "section_id" in changes:
        changes["section_id"] = str(changes["section_id"]) if changes["section_id"] else None
        await _check_section(datastore, tenant.id, changes["section_id"])

    item = await datastore.update_menu_item(tenant.id, item_id, changes)
    if item is None:
        raise NotFoundError(ErrorCode.ITEM_NOT_FOUND)

    logger.info(f"Menu item {item_id} updated: {sorted(changes)}")
    return ok_response(item.model_dump(by_alias=True, mode="json"))


@router.delete("/items/{item_id}", summary="Delete Menu Item")
async def delete_item(
    item_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    query = validated(query_params(request), TenantQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    if not await datastore.delete_menu_item(tenant.id, item_id):
        raise NotFoundError(ErrorCode.ITEM_NOT_FOUND)

    logger.info(f"Menu item {item_id} deleted for tenant {tenant.id}")
    return ok_response({"id": item_id, "deleted": True})


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", summary="List Orders")
async def list_orders(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Paginated orders, newest first, optionally filtered by status."""
    query = validated(query_params(request), OrderListQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    total, orders = await datastore.list_orders(tenant.id, status=query.status, skip=query.skip, limit=query.limit)
    view = OrderListView(total=total, orders=[OrderView.from_order(o) for o in orders])
    return ok_response(view.model_dump(by_alias=True, mode="json"))


@router.patch("/orders/{order_id}/status", summary="Update Order Status")
async def update_order_status(
    order_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """
    Move an order along its lifecycle.

    Disallowed moves return INVALID_TRANSITION with the allowed targets;
    losing a race with another update returns CONFLICT.
    """
    payload = validated(await read_json(request), OrderStatusUpdate)
    tenant = await load_tenant(datastore, payload.tenant_id)

    order = await change_status(datastore, tenant.id, order_id, payload.status)
    return ok_response(OrderView.from_order(order).model_dump(by_alias=True, mode="json"))
