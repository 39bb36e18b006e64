from __future__ import annotations

from decimal import Decimal

from sqlalchemy import exists, select

from ..db.models import MAX_INTEGER, OrderProduct, Product
from ..db.session import Database
from ..errors import ConflictError, NotFoundError, ValidationError
from ..observability.logging import get_logger
from ..schemas import ProductOut

log = get_logger("product_service")


def _validate_fields(*, name: str, price: Decimal, stock: int) -> str:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if price is None or Decimal(price) < 0:
        raise ValidationError("price must be non-negative")
    if stock is None or int(stock) < 0:
        raise ValidationError("stock must be non-negative")
    if int(stock) > MAX_INTEGER:
        raise ValidationError(f"stock must not exceed {MAX_INTEGER}")
    return name


class ProductService:
    def __init__(self, db: Database):
        self._db = db

    def create(self, *, name: str, description: str = "", price: Decimal, stock: int) -> ProductOut:
        name = _validate_fields(name=name, price=price, stock=stock)
        with self._db.session() as s:
            product = Product(name=name, description=description or "", price=Decimal(price), stock=int(stock))
            s.add(product)
            s.flush()
            out = ProductOut.model_validate(product)
        log.info("product_created", product_id=out.id)
        return out

    def list(self) -> list[ProductOut]:
        with self._db.session() as s:
            rows = s.scalars(select(Product).order_by(Product.id)).all()
            return [ProductOut.model_validate(p) for p in rows]

    def get(self, product_id: int) -> ProductOut:
        with self._db.session() as s:
            product = s.get(Product, product_id)
            if product is None:
                raise NotFoundError("Product not found")
            return ProductOut.model_validate(product)

    def update(
        self,
        product_id: int,
        *,
        name: str,
        description: str = "",
        price: Decimal,
        stock: int,
    ) -> ProductOut:
        """Full replace of the mutable fields."""
        name = _validate_fields(name=name, price=price, stock=stock)
        with self._db.session() as s:
            product = s.get(Product, product_id)
            if product is None:
                raise NotFoundError("Product not found")
            product.name = name
            product.description = description or ""
            product.price = Decimal(price)
            product.stock = int(stock)
            s.flush()
            out = ProductOut.model_validate(product)
        log.info("product_updated", product_id=product_id)
        return out

    def delete(self, product_id: int) -> None:
        with self._db.session() as s:
            product = s.get(Product, product_id)
            if product is None:
                raise NotFoundError("Product not found")
            referenced = s.scalar(select(exists().where(OrderProduct.product_id == product_id)))
            if referenced:
                raise ConflictError("Product is referenced by existing orders")
            s.delete(product)
        log.info("product_deleted", product_id=product_id)
