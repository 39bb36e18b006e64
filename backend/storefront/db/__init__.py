"""Relational storage.

This package centralizes:
- SQLAlchemy entity definitions (users, products, orders, line items)
- engine/session construction behind an injectable ``Database`` capability

"""

from __future__ import annotations

from .models import MAX_INTEGER, Base, Order, OrderProduct, OrderStatus, Product, Role, User
from .session import Database

__all__ = [
    "MAX_INTEGER",
    "Base",
    "Database",
    "Order",
    "OrderProduct",
    "OrderStatus",
    "Product",
    "Role",
    "User",
]
