# storefront/api/orders.py
# Роуты заказов: оформление, история, отмена, смена статуса администратором.
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.core.money import format_currency
from storefront.core.security import Principal, get_current_principal, require_role
from storefront.db.session import get_db
from storefront.schemas.order import (
    CheckoutRequest, OrderOut, OrderStatsOut, PlaceOrderRequest, RecentOrderOut, StatusUpdateRequest,
)
from storefront.services import orders as order_service
from storefront.services.order_status import can_cancel, status_info

router = APIRouter()


def _with_status_info(order) -> dict:
    data = OrderOut.model_validate(order).model_dump(mode="json")
    data["status_info"] = status_info(order.status)
    data["can_cancel"] = can_cancel(order)
    data["total_display"] = format_currency(order.total_amount)
    return data


@router.post("", status_code=201)
def place_order(
    payload: PlaceOrderRequest,
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    """Оформление заказа из явно переданных строк (цены: текущие цены витрины)."""
    order = order_service.place_order(db, principal, payload.shipping_address, payload.items)
    return _with_status_info(order)


@router.post("/checkout", status_code=201)
def checkout(
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    """Оформление заказа из серверной корзины; корзина очищается."""
    order = order_service.checkout(db, principal, payload.shipping_address)
    return _with_status_info(order)


@router.get("", response_model=list[OrderOut])
def list_orders(
    status: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    all_customers: bool = False,
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    return order_service.list_orders(
        db, principal, status=status, limit=limit, offset=offset, all_customers=all_customers
    )


@router.get("/recent", response_model=list[RecentOrderOut])
def recent_orders(
    limit: int = Query(default=5, ge=1, le=50),
    db: Session = Depends(get_db),
    principal: Principal | None = Depends(get_current_principal),
):
    return [
        {
            "id": o.id,
            "total_amount": o.total_amount,
            "status": o.status,
            "created_at": o.created_at,
            "total_items": o.total_items,
        }
        for o in order_service.recent_orders(db, principal, limit=limit)
    ]


@router.get("/stats", response_model=OrderStatsOut)
def order_stats(db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)):
    return order_service.order_stats(db, principal)


@router.get("/{order_id}")
def get_order(
    order_id: str, db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)
):
    return _with_status_info(order_service.get_order(db, principal, order_id))


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: str, db: Session = Depends(get_db), principal: Principal | None = Depends(get_current_principal)
):
    return _with_status_info(order_service.cancel_order(db, principal, order_id))


@router.patch("/{order_id}/status")
def update_status(
    order_id: str,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role("admin")),
):
    """Обработка заказа: pending → processing → shipped → delivered."""
    return _with_status_info(order_service.update_order_status(db, principal, order_id, payload.status))
