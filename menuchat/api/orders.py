"""
Order Endpoints (Widget)

    - POST /orders:           Place an order from a widget session
    - GET  /orders/{order_id}: Public order status read

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from menuchat.api.deps import (
    get_datastore,
    get_guard,
    load_tenant,
    query_params,
    read_json,
    request_origin,
    unwrap,
    validated,
)
from menuchat.core.envelope import ok_response
from menuchat.core.errors import ErrorCode, NotFoundError
from menuchat.schemas import OrderCreate, OrderSummaryView, TenantQuery
from menuchat.services.datastore.base import BaseDataStore
from menuchat.services.guard import OriginSessionGuard
from menuchat.services.orders import place_order

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", summary="Place Order")
async def create_order(
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
    guard: OriginSessionGuard = Depends(get_guard),
) -> JSONResponse:
    """
    Create a pending order for the caller's widget session.

    Prices come from the restaurant's menu, never from the request.
    """
    payload = validated(await read_json(request), OrderCreate)
    tenant = await load_tenant(datastore, payload.tenant_id)
    authorized = unwrap(await guard.authorize(tenant, request_origin(request), payload.session_token))

    order = await place_order(datastore, tenant.id, authorized.session.id, payload)
    return ok_response(
        OrderSummaryView.from_order(order).model_dump(by_alias=True, mode="json"),
        status_code=201,
    )


@router.get("/{order_id}", summary="Order Status")
async def get_order_status(
    order_id: str,
    request: Request,
    datastore: BaseDataStore = Depends(get_datastore),
) -> JSONResponse:
    """Status of one order. Orders of other restaurants are reported as not found."""
    query = validated(query_params(request), TenantQuery)
    tenant = await load_tenant(datastore, query.tenant_id)

    order = await datastore.get_order(tenant.id, order_id)
    if order is None:
        raise NotFoundError(ErrorCode.ORDER_NOT_FOUND)

    return ok_response(OrderSummaryView.from_order(order).model_dump(by_alias=True, mode="json"))
