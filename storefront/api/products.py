# storefront/api/products.py
# Каталог: чтение открыто всем, изменение только администратору.
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.core.security import Principal, require_role
from storefront.db.session import get_db
from storefront.schemas.product import (
    ImageCreate, ProductCreate, ProductImageOut, ProductOut, ProductUpdate, StockUpdate,
)
from storefront.services import products as product_service

router = APIRouter()
admin_only = require_role("admin")


@router.get("", response_model=list[ProductOut])
def list_products(
    category: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return product_service.list_products(db, category=category, limit=limit, offset=offset)


@router.get("/search", response_model=list[ProductOut])
def search_products(q: str, limit: int = Query(default=20, ge=1, le=100), db: Session = Depends(get_db)):
    return product_service.search_products(db, q, limit=limit)


@router.get("/categories", response_model=list[str])
def list_categories(db: Session = Depends(get_db)):
    return product_service.list_categories(db)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return product_service.get_product(db, product_id)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), _: Principal = Depends(admin_only)):
    data = payload.model_dump(exclude={"image_urls"})
    return product_service.create_product(db, data, payload.image_urls)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str, payload: ProductUpdate, db: Session = Depends(get_db), _: Principal = Depends(admin_only)
):
    return product_service.update_product(db, product_id, payload.model_dump(exclude_unset=True))


@router.put("/{product_id}/stock", response_model=ProductOut)
def update_stock(
    product_id: str, payload: StockUpdate, db: Session = Depends(get_db), _: Principal = Depends(admin_only)
):
    return product_service.update_stock(db, product_id, payload.stock_quantity)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db), _: Principal = Depends(admin_only)):
    product_service.delete_product(db, product_id)


@router.post("/{product_id}/images", response_model=ProductImageOut, status_code=201)
def add_image(
    product_id: str, payload: ImageCreate, db: Session = Depends(get_db), _: Principal = Depends(admin_only)
):
    return product_service.add_image(db, product_id, payload.image_url, payload.is_primary)
