from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from ..auth.dependencies import current_principal, require_admin
from ..auth.security import Principal
from ..db.models import MAX_INTEGER
from ..schemas import DataOut, MessageOut, OrderOut
from ..services import LineItem, Services, get_services

router = APIRouter(tags=["orders"])

OrderId = Annotated[int, Path(le=MAX_INTEGER)]


class OrderLineIn(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0, le=MAX_INTEGER)


class PlaceOrderRequest(BaseModel):
    products: list[OrderLineIn] = Field(..., min_length=1)


class OrderStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)


@router.post("", response_model=DataOut[OrderOut], status_code=201)
def place_order(
    body: PlaceOrderRequest,
    principal: Principal = Depends(current_principal),
    services: Services = Depends(get_services),
):
    items = [LineItem(product_id=p.product_id, quantity=p.quantity) for p in body.products]
    return {"data": services.orders.place_order(principal, items)}


@router.get("", response_model=DataOut[list[OrderOut]])
def list_user_orders(
    principal: Principal = Depends(current_principal),
    services: Services = Depends(get_services),
):
    return {"data": services.orders.list_for_user(principal)}


@router.get("/{order_id}", response_model=DataOut[OrderOut])
def get_order(
    order_id: OrderId,
    principal: Principal = Depends(current_principal),
    services: Services = Depends(get_services),
):
    return {"data": services.orders.get(principal, order_id)}


@router.put("/{order_id}/cancel", response_model=MessageOut)
def cancel_order(
    order_id: OrderId,
    principal: Principal = Depends(current_principal),
    services: Services = Depends(get_services),
):
    services.orders.cancel(principal, order_id)
    return MessageOut(message="Order cancelled successfully")


@router.put("/{order_id}/status", response_model=DataOut[OrderOut], dependencies=[Depends(require_admin)])
def update_order_status(
    order_id: OrderId,
    body: OrderStatusRequest,
    services: Services = Depends(get_services),
):
    return {"data": services.orders.update_status(order_id, body.status)}
