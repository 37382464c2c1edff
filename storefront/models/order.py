# storefront/models/order.py
# Модели Order и OrderItem для фиксации сумм и статусов заказа.
#
# total_amount является производным полем. После любого flush, который меняет строки
# заказа (insert/update/delete) или трогает total_amount напрямую, сумма
# пересчитывается из order_items в той же транзакции. См. хуки внизу файла.
import enum
import logging

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Enum, CheckConstraint,
    event, select, update,
)
from sqlalchemy.orm import Session, relationship
from sqlalchemy.orm.attributes import get_history

from storefront.core.money import compute_total
from storefront.db.base import Base, new_id, utcnow

logger = logging.getLogger(__name__)


class OrderStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.pending, index=True)
    shipping_address = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    customer = relationship("User")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("price_at_time >= 0", name="ck_order_items_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    # Цена на момент покупки. Никогда не пересчитывается из products.price.
    price_at_time = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product is not None else None


# ── Пересчёт total_amount ───────────────────────────

_PENDING_KEY = "orders_to_reconcile"


def _order_ref(item: OrderItem):
    if item.order_id:
        return item.order_id
    # У нового заказа id появляется только при INSERT, поэтому храним сам объект.
    return item.order


def _collect_orders(session: Session, flush_context, instances) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, OrderItem):
            if obj in session.dirty and not session.is_modified(obj, include_collections=False):
                continue
            pending.append(_order_ref(obj))
            # строку перенесли в другой заказ: старый тоже пересчитываем
            old_order_id = get_history(obj, "order_id").deleted
            pending.extend(i for i in old_order_id if i)
        elif isinstance(obj, Order):
            # новый заказ (даже без строк) и прямое изменение суммы пересчитываем
            if obj in session.new or get_history(obj, "total_amount").has_changes():
                pending.append(obj)
    for obj in session.deleted:
        if isinstance(obj, OrderItem) and obj.order_id:
            pending.append(obj.order_id)


def reconcile_order_total(session: Session, order_id: str):
    """
    Пересчитывает и сохраняет total_amount заказа из его строк.
    Строка заказа блокируется (FOR UPDATE там, где это поддерживается),
    чтобы два параллельных изменения одного заказа не дали «смешанную» сумму.
    Возвращает новую сумму или None, если заказа уже нет.
    """
    orders, items = Order.__table__, OrderItem.__table__
    conn = session.connection()
    locked = conn.execute(
        select(orders.c.id).where(orders.c.id == order_id).with_for_update()
    ).first()
    if locked is None:
        return None
    rows = conn.execute(
        select(items.c.quantity, items.c.price_at_time).where(items.c.order_id == order_id)
    ).all()
    total = compute_total((r.quantity, r.price_at_time) for r in rows)
    conn.execute(
        update(orders).where(orders.c.id == order_id).values(total_amount=total, updated_at=utcnow())
    )
    logger.debug("Order %s total reconciled to %s (%d items)", order_id, total, len(rows))
    return total


def _reconcile(session: Session, flush_context) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    seen = set()
    for ref in pending:
        order_id = ref.id if isinstance(ref, Order) else ref
        if order_id is None or order_id in seen:
            continue
        seen.add(order_id)
        reconcile_order_total(session, order_id)
    if seen:
        session.info["orders_reconciled"] = seen


def _expire_reconciled(session: Session, flush_context) -> None:
    # Значения в памяти устарели: перечитаются из БД при следующем обращении.
    for order_id in session.info.pop("orders_reconciled", ()):
        obj = session.identity_map.get(session.identity_key(Order, order_id))
        if obj is not None:
            session.expire(obj, ["total_amount", "updated_at"])


def _discard_pending(session: Session, previous_transaction) -> None:
    session.info.pop(_PENDING_KEY, None)
    session.info.pop("orders_reconciled", None)


event.listen(Session, "before_flush", _collect_orders)
event.listen(Session, "after_flush", _reconcile)
event.listen(Session, "after_flush_postexec", _expire_reconciled)
event.listen(Session, "after_soft_rollback", _discard_pending)
