"""
Response shapes for the HTTP surface.

Services return these models, built from ORM rows while the session is still
open, so nothing downstream touches lazy-loaded attributes.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer

from .db.models import OrderStatus, Role

# Decimals go out as JSON numbers, not strings.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

T = TypeVar("T")


class _ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(_ORMModel):
    id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


class ProductOut(_ORMModel):
    id: int
    name: str
    description: str
    price: Money
    stock: int
    created_at: datetime
    updated_at: datetime


class OrderProductOut(_ORMModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: Money
    product: ProductOut | None = None


class OrderOut(_ORMModel):
    id: int
    user_id: int
    status: OrderStatus
    total_amount: Money
    products: list[OrderProductOut]
    created_at: datetime
    updated_at: datetime


class TokenOut(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int


class MessageOut(BaseModel):
    message: str


class DataOut(BaseModel, Generic[T]):
    """``{"data": ...}`` envelope used by the order routes."""

    data: T
