# storefront/api/cart.py
# Роуты корзины текущего пользователя.
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.security import Principal, get_current_principal
from storefront.db.session import get_db
from storefront.schemas.cart import CartItemAdd, CartItemUpdate, CartOut
from storefront.services import cart as cart_service

router = APIRouter()


@router.get("", response_model=CartOut)
def get_cart(db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)):
    return cart_service.summary(db, principal)


@router.post("/items", response_model=CartOut, status_code=201)
def add_item(
    payload: CartItemAdd,
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    cart_service.add_item(db, principal, payload.product_id, payload.quantity)
    return cart_service.summary(db, principal)


@router.patch("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: str,
    payload: CartItemUpdate,
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    cart_service.update_quantity(db, principal, product_id, payload.quantity)
    return cart_service.summary(db, principal)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: str, db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)
):
    cart_service.remove_item(db, principal, product_id)
    return cart_service.summary(db, principal)


@router.delete("", status_code=204)
def clear_cart(db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)):
    cart_service.clear(db, principal)
