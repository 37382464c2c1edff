# storefront/services/orders.py
# Работа с заказами: оформление, чтение, статистика, отмена и смена статуса.
#
# Заказ и все его строки создаются в одной транзакции: либо появляется всё,
# либо ничего. Сумма считается на сервере (Decimal) и дополнительно
# сверяется хуком пересчёта из storefront/models/order.py.
import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from storefront.core.config import settings
from storefront.core.errors import Forbidden, InvalidInput, InvalidTransition, NotFound, PersistenceFailure, Unauthorized
from storefront.core.money import compute_total, round_money, to_decimal
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product
from storefront.services import cart as cart_service
from storefront.services.order_status import can_cancel, parse_status, transition

logger = logging.getLogger(__name__)


def _require_principal(principal, message: str = "User must be authenticated"):
    if principal is None:
        raise Unauthorized(message)
    return principal


def _field(line, *names):
    for name in names:
        if isinstance(line, Mapping):
            if name in line:
                return line[name]
        elif hasattr(line, name):
            return getattr(line, name)
    return None


def _normalize_lines(cart_lines) -> list[tuple[str, int, Decimal]]:
    """Приводит строки корзины к (product_id, quantity, unit_price) и проверяет их."""
    lines = []
    for line in cart_lines or []:
        product_id = _field(line, "product_id", "productId", "id")
        quantity = _field(line, "quantity")
        unit_price = _field(line, "unit_price", "unitPrice", "price")
        if not product_id:
            raise InvalidInput("Each item must reference a product")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInput("Quantity must be a positive integer")
        try:
            price = to_decimal(unit_price) if unit_price is not None else None
        except InvalidOperation:
            price = None
        if price is None or not price.is_finite() or price < 0:
            raise InvalidInput("Unit price must be a non-negative number")
        lines.append((str(product_id), quantity, round_money(price)))
    return lines


def _check_products_exist(db: Session, product_ids) -> None:
    wanted = set(product_ids)
    found = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(wanted)).all()}
    missing = wanted - found
    if missing:
        raise InvalidInput(f"Unknown product: {', '.join(sorted(missing))}")


def _build_order(principal, shipping_address: str, lines) -> Order:
    total = compute_total((quantity, price) for _, quantity, price in lines)
    order = Order(
        customer_id=principal.id,
        total_amount=total,
        status=OrderStatus.pending,
        shipping_address=shipping_address,
    )
    for position, (product_id, quantity, price) in enumerate(lines):
        # Цена берётся из корзины на момент оформления, а не из каталога.
        order.items.append(
            OrderItem(product_id=product_id, quantity=quantity, price_at_time=price, position=position)
        )
    return order


def _place(db: Session, principal, shipping_address, cart_lines, before_commit=None) -> Order:
    _require_principal(principal, "User must be authenticated to create an order")
    shipping_address = (shipping_address or "").strip()
    if not shipping_address:
        raise InvalidInput("Shipping address is required")
    lines = _normalize_lines(cart_lines)
    if not lines:
        raise InvalidInput("Cart is empty")
    _check_products_exist(db, [product_id for product_id, _, _ in lines])

    order = _build_order(principal, shipping_address, lines)
    try:
        db.add(order)
        db.flush()
        order_id = order.id
        if before_commit is not None:
            before_commit()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to place order for user {principal.id}: {e}")
        raise PersistenceFailure("Could not place the order, please try again.") from e

    logger.info(f"✅ Order {order_id} placed by user {principal.id} ({len(lines)} items)")
    return get_order(db, principal, order_id)


def place_order(db: Session, principal, shipping_address: str, cart_lines) -> Order:
    """
    Оформляет заказ из переданных строк {product_id, quantity, unit_price}.

    Цена строки фиксируется как price_at_time: это цена, которую передал
    вызывающий код (текущая цена каталога на момент оформления).
    Возвращает заказ, перечитанный из БД после коммита.
    """
    return _place(db, principal, shipping_address, cart_lines)


def checkout(db: Session, principal, shipping_address: str) -> Order:
    """Оформляет заказ из корзины пользователя и очищает корзину в той же транзакции."""
    _require_principal(principal, "User must be authenticated to create an order")
    lines = cart_service.snapshot(db, principal)
    return _place(
        db, principal, shipping_address, lines,
        before_commit=lambda: cart_service.clear(db, principal, commit=False),
    )


def _visible_orders(db: Session, principal):
    # Покупатель видит только свои заказы, администратор: все.
    query = db.query(Order)
    if not principal.is_admin:
        query = query.filter(Order.customer_id == principal.id)
    return query


def get_order(db: Session, principal, order_id: str) -> Order:
    _require_principal(principal)
    order = (
        _visible_orders(db, principal)
        .options(selectinload(Order.items).joinedload(OrderItem.product))
        .filter(Order.id == order_id)
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFound("Order not found")
    return order


def list_orders(
    db: Session,
    principal,
    status: str | None = None,
    limit: int | None = None,
    offset: int = 0,
    all_customers: bool = False,
) -> list[Order]:
    """Заказы пользователя, новые первыми. all_customers: только для администратора."""
    _require_principal(principal)
    if all_customers and not principal.is_admin:
        raise Forbidden()
    query = db.query(Order) if all_customers else db.query(Order).filter(Order.customer_id == principal.id)
    if status:
        query = query.filter(Order.status == parse_status(status))
    return (
        query.options(selectinload(Order.items).joinedload(OrderItem.product))
        .order_by(Order.created_at.desc(), Order.id)
        .offset(offset)
        .limit(limit or settings.ORDERS_PAGE_SIZE)
        .all()
    )


def recent_orders(db: Session, principal, limit: int = 5) -> list[Order]:
    return list_orders(db, principal, limit=limit)


def order_stats(db: Session, principal) -> dict:
    """Количество заказов, сумма покупок и разбивка по статусам."""
    _require_principal(principal)
    rows = (
        db.query(Order.status, func.count(Order.id), func.sum(Order.total_amount))
        .filter(Order.customer_id == principal.id)
        .group_by(Order.status)
        .all()
    )
    by_status = {s.value: 0 for s in OrderStatus}
    total_orders = 0
    total_spent = Decimal("0")
    for status, count, amount in rows:
        by_status[OrderStatus(status).value] = count
        total_orders += count
        total_spent += to_decimal(amount)
    return {
        "total_orders": total_orders,
        "total_spent": round_money(total_spent),
        "orders_by_status": by_status,
    }


def _get_for_update(db: Session, principal, order_id: str) -> Order:
    order = (
        _visible_orders(db, principal)
        .filter(Order.id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFound("Order not found")
    return order


def _commit_transition(db: Session, order: Order) -> Order:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to update order {order.id}: {e}")
        raise PersistenceFailure("Could not update the order, please try again.") from e
    db.refresh(order)
    return order


def cancel_order(db: Session, principal, order_id: str) -> Order:
    """Отмена заказа покупателем: только из pending или processing."""
    _require_principal(principal)
    order = _get_for_update(db, principal, order_id)
    if not can_cancel(order):
        db.rollback()
        raise InvalidTransition("Only pending or processing orders can be cancelled")
    transition(order, OrderStatus.cancelled)
    return _commit_transition(db, order)


def update_order_status(db: Session, principal, order_id: str, new_status) -> Order:
    """Смена статуса администратором (обработка/отгрузка/доставка)."""
    _require_principal(principal)
    if not principal.is_admin:
        raise Forbidden()
    new_status = parse_status(new_status)
    order = _get_for_update(db, principal, order_id)
    try:
        transition(order, new_status)
    except InvalidTransition:
        db.rollback()
        raise
    return _commit_transition(db, order)
