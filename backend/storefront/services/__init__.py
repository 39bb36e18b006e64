from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from ..auth.security import PasswordHasher, TokenCodec
from ..db.session import Database
from ..settings import Settings
from .order_service import LineItem, OrderService
from .product_service import ProductService
from .user_service import UserService


@dataclass(slots=True)
class Services:
    users: UserService
    products: ProductService
    orders: OrderService

    @classmethod
    def build(cls, db: Database, settings: Settings, *, tokens: TokenCodec | None = None) -> "Services":
        return cls(
            users=UserService(
                db,
                hasher=PasswordHasher.from_settings(settings),
                tokens=tokens or TokenCodec.from_settings(settings),
            ),
            products=ProductService(db),
            orders=OrderService(db),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


__all__ = [
    "LineItem",
    "OrderService",
    "ProductService",
    "Services",
    "UserService",
    "get_services",
]
