# storefront/services/cart.py
# Корзина пользователя. snapshot() отдаёт строки для оформления заказа
# с текущими ценами каталога.
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from storefront.core.errors import InvalidInput, NotFound, Unauthorized
from storefront.core.money import compute_total, round_money, to_decimal
from storefront.models.cart import CartItem
from storefront.models.product import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price: Decimal
    name: str | None = None

    @property
    def line_total(self) -> Decimal:
        return round_money(self.quantity * to_decimal(self.unit_price))


def _require(principal):
    if principal is None:
        raise Unauthorized("You must be signed in to use the cart")
    return principal


def _items(db: Session, user_id: str) -> list[CartItem]:
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.added_at, CartItem.id)
        .all()
    )


def snapshot(db: Session, principal) -> list[CartLine]:
    """Строки корзины в порядке добавления, цена: текущая цена товара."""
    _require(principal)
    return [
        CartLine(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=to_decimal(item.product.price),
            name=item.product.name,
        )
        for item in _items(db, principal.id)
    ]


def summary(db: Session, principal) -> dict:
    lines = snapshot(db, principal)
    return {
        "items": [
            {
                "product_id": line.product_id,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "line_total": line.line_total,
            }
            for line in lines
        ],
        "item_count": sum(line.quantity for line in lines),
        "subtotal": compute_total((line.quantity, line.unit_price) for line in lines),
    }


def add_item(db: Session, principal, product_id: str, quantity: int = 1) -> CartItem:
    """Добавляет товар; если он уже в корзине: увеличивает количество."""
    _require(principal)
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")
    if db.get(Product, product_id) is None:
        raise NotFound("Product not found")
    item = (
        db.query(CartItem)
        .filter(CartItem.user_id == principal.id, CartItem.product_id == product_id)
        .first()
    )
    if item:
        item.quantity += quantity
    else:
        item = CartItem(user_id=principal.id, product_id=product_id, quantity=quantity)
        db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_quantity(db: Session, principal, product_id: str, quantity: int) -> CartItem:
    _require(principal)
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")
    item = (
        db.query(CartItem)
        .filter(CartItem.user_id == principal.id, CartItem.product_id == product_id)
        .first()
    )
    if item is None:
        raise NotFound("Item is not in the cart")
    item.quantity = quantity
    db.commit()
    db.refresh(item)
    return item


def remove_item(db: Session, principal, product_id: str) -> None:
    _require(principal)
    deleted = (
        db.query(CartItem)
        .filter(CartItem.user_id == principal.id, CartItem.product_id == product_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise NotFound("Item is not in the cart")
    db.commit()


def clear(db: Session, principal, commit: bool = True) -> None:
    """Очищает корзину. commit=False: в составе чужой транзакции (оформление заказа)."""
    _require(principal)
    db.query(CartItem).filter(CartItem.user_id == principal.id).delete(synchronize_session=False)
    if commit:
        db.commit()
