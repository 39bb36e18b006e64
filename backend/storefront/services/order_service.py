from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from ..auth.security import Principal
from ..db.models import MAX_INTEGER, Order, OrderProduct, OrderStatus, Product
from ..db.session import Database
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..observability.logging import get_logger
from ..schemas import OrderOut

log = get_logger("order_service")

# Targets accepted by the admin status update. Pending is never a target.
ADMIN_STATUS_TARGETS = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: int
    quantity: int


def _with_lines():
    return selectinload(Order.products).selectinload(OrderProduct.product)


def _parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


class OrderService:
    def __init__(self, db: Database):
        self._db = db

    def place_order(self, caller: Principal, items: Iterable[LineItem]) -> OrderOut:
        """
        Place an order for ``caller``.

        Line items are processed in input order inside one transaction. Stock is
        decremented with a conditional update, so a concurrent order can never
        push stock below zero, and any failing line item rolls back every
        decrement made before it.
        """
        lines = list(items)
        if not lines:
            raise ValidationError("at least one product is required")
        for line in lines:
            if int(line.quantity) <= 0:
                raise ValidationError("quantity must be a positive integer")
            if int(line.quantity) > MAX_INTEGER:
                raise ValidationError(f"quantity must not exceed {MAX_INTEGER}")

        with self._db.session() as s:
            total = Decimal("0")
            order_lines: list[OrderProduct] = []
            for line in lines:
                product = self._reserve_stock(s, line)
                total += product.price * line.quantity
                order_lines.append(
                    OrderProduct(
                        product_id=product.id,
                        quantity=line.quantity,
                        unit_price=product.price,
                    )
                )

            order = Order(
                user_id=caller.user_id,
                status=OrderStatus.PENDING,
                total_amount=total,
                products=order_lines,
            )
            s.add(order)
            s.flush()
            out = self._load(s, order.id)

        log.info(
            "order_placed",
            order_id=out.id,
            user_id=caller.user_id,
            line_items=len(lines),
            total_amount=str(out.total_amount),
        )
        return out

    def _reserve_stock(self, s: Session, line: LineItem) -> Product:
        # Ids past the column range cannot exist.
        if not 0 < int(line.product_id) <= MAX_INTEGER:
            raise NotFoundError("Product not found")
        product = s.scalar(
            select(Product).where(Product.id == line.product_id).with_for_update()
        )
        if product is None:
            raise NotFoundError("Product not found")

        result = s.execute(
            update(Product)
            .where(Product.id == line.product_id, Product.stock >= line.quantity)
            .values(stock=Product.stock - line.quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ValidationError("Insufficient stock")

        s.refresh(product)
        return product

    def list_for_user(self, caller: Principal) -> list[OrderOut]:
        with self._db.session() as s:
            rows = s.scalars(
                select(Order)
                .where(Order.user_id == caller.user_id)
                .options(_with_lines())
                .order_by(Order.id)
            ).all()
            return [OrderOut.model_validate(o) for o in rows]

    def get(self, caller: Principal, order_id: int) -> OrderOut:
        with self._db.session() as s:
            order = self._get_visible(s, caller, order_id)
            return OrderOut.model_validate(order)

    def cancel(self, caller: Principal, order_id: int) -> OrderOut:
        with self._db.session() as s:
            order = s.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order not found")
            if order.user_id != caller.user_id and not caller.is_admin:
                raise AuthorizationError("You do not own this order")
            if order.status is not OrderStatus.PENDING:
                raise ValidationError("Only pending orders can be cancelled")
            order.status = OrderStatus.CANCELLED
            s.flush()
            out = self._load(s, order_id)

        log.info("order_cancelled", order_id=order_id, user_id=caller.user_id)
        return out

    def update_status(self, order_id: int, status: OrderStatus | str) -> OrderOut:
        with self._db.session() as s:
            order = s.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order not found")
            target = _parse_status(status)
            if target not in ADMIN_STATUS_TARGETS:
                raise ValidationError("Invalid status")
            previous = order.status
            order.status = target
            s.flush()
            out = self._load(s, order_id)

        log.info(
            "order_status_updated",
            order_id=order_id,
            from_status=previous.value,
            to_status=target.value,
        )
        return out

    def _get_visible(self, s: Session, caller: Principal, order_id: int) -> Order:
        order = s.scalar(select(Order).where(Order.id == order_id).options(_with_lines()))
        # Non-owners get the same answer as for a missing order.
        if order is None or (order.user_id != caller.user_id and not caller.is_admin):
            raise NotFoundError("Order not found")
        return order

    def _load(self, s: Session, order_id: int) -> OrderOut:
        order = s.scalar(
            select(Order)
            .where(Order.id == order_id)
            .options(_with_lines())
            .execution_options(populate_existing=True)
        )
        return OrderOut.model_validate(order)
