from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from ..auth.dependencies import catalog_reader, require_admin
from ..db.models import MAX_INTEGER
from ..schemas import MessageOut, ProductOut
from ..services import Services, get_services

router = APIRouter(tags=["products"])

ProductId = Annotated[int, Path(le=MAX_INTEGER)]


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(..., ge=0, le=MAX_INTEGER)


@router.post("", response_model=ProductOut, status_code=201, dependencies=[Depends(require_admin)])
def create_product(body: ProductIn, services: Services = Depends(get_services)):
    return services.products.create(**body.model_dump())


@router.get("", response_model=list[ProductOut], dependencies=[Depends(catalog_reader)])
def list_products(services: Services = Depends(get_services)):
    return services.products.list()


@router.get("/{product_id}", response_model=ProductOut, dependencies=[Depends(catalog_reader)])
def get_product(product_id: ProductId, services: Services = Depends(get_services)):
    return services.products.get(product_id)


@router.put("/{product_id}", response_model=ProductOut, dependencies=[Depends(require_admin)])
def update_product(product_id: ProductId, body: ProductIn, services: Services = Depends(get_services)):
    return services.products.update(product_id, **body.model_dump())


@router.delete("/{product_id}", response_model=MessageOut, dependencies=[Depends(require_admin)])
def delete_product(product_id: ProductId, services: Services = Depends(get_services)):
    services.products.delete(product_id)
    return MessageOut(message="Product deleted successfully")
