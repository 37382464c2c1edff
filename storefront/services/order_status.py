# storefront/services/order_status.py
# Допустимые переходы статусов заказа.
#
#   pending → processing → shipped → delivered
#   pending → cancelled, processing → cancelled
#
# Всё остальное запрещено: shipped/delivered/cancelled отменить нельзя.
import logging

from storefront.core.errors import InvalidInput, InvalidTransition
from storefront.db.base import utcnow
from storefront.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = frozenset({
    (OrderStatus.pending, OrderStatus.processing),
    (OrderStatus.processing, OrderStatus.shipped),
    (OrderStatus.shipped, OrderStatus.delivered),
    (OrderStatus.pending, OrderStatus.cancelled),
    (OrderStatus.processing, OrderStatus.cancelled),
})

CANCELLABLE = frozenset({OrderStatus.pending, OrderStatus.processing})

STATUS_INFO = {
    OrderStatus.pending: {
        "label": "Pending",
        "color": "warning",
        "description": "Your order is being processed",
    },
    OrderStatus.processing: {
        "label": "Processing",
        "color": "info",
        "description": "Your order is being prepared for shipment",
    },
    OrderStatus.shipped: {
        "label": "Shipped",
        "color": "primary",
        "description": "Your order has been shipped",
    },
    OrderStatus.delivered: {
        "label": "Delivered",
        "color": "success",
        "description": "Your order has been delivered",
    },
    OrderStatus.cancelled: {
        "label": "Cancelled",
        "color": "danger",
        "description": "This order has been cancelled",
    },
}


def parse_status(value) -> OrderStatus:
    """Строка -> OrderStatus, неизвестный статус: InvalidInput."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise InvalidInput(f"Invalid status. Must be one of: {valid}")


def can_transition(current, requested) -> bool:
    try:
        return (OrderStatus(current), OrderStatus(requested)) in ALLOWED_TRANSITIONS
    except ValueError:
        return False


def can_cancel(order: Order | None) -> bool:
    return order is not None and order.status in CANCELLABLE


def transition(order: Order, new_status) -> Order:
    """
    Меняет статус заказа, если переход разрешён.
    Меняются только status и updated_at; при отказе заказ не трогаем.
    Коммит: забота вызывающего кода.
    """
    new_status = parse_status(new_status)
    current = OrderStatus(order.status)
    if not can_transition(current, new_status):
        raise InvalidTransition(
            f"Cannot change order status from {current.value} to {new_status.value}"
        )
    order.status = new_status
    order.updated_at = utcnow()
    logger.info("Order %s: %s -> %s", order.id, current.value, new_status.value)
    return order


def status_info(status) -> dict:
    """Подпись, цвет и описание статуса для отображения."""
    try:
        return dict(STATUS_INFO[OrderStatus(status)])
    except ValueError:
        return {"label": str(status), "color": "default", "description": ""}
