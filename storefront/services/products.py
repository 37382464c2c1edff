# storefront/services/products.py
# Каталог товаров: выборка, поиск, категории и администрирование.
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from storefront.core.config import settings
from storefront.core.errors import Conflict, NotFound
from storefront.models.product import Product, ProductImage

logger = logging.getLogger(__name__)


def list_products(db: Session, category: str | None = None, limit: int | None = None, offset: int = 0) -> list[Product]:
    query = db.query(Product).options(selectinload(Product.images))
    if category:
        query = query.filter(Product.category == category)
    return (
        query.order_by(Product.created_at.desc(), Product.id)
        .offset(offset)
        .limit(limit or settings.DEFAULT_PAGE_SIZE)
        .all()
    )


def get_product(db: Session, product_id: str) -> Product:
    product = (
        db.query(Product)
        .options(selectinload(Product.images))
        .filter(Product.id == product_id)
        .first()
    )
    if product is None:
        raise NotFound("Product not found")
    return product


def search_products(db: Session, term: str, limit: int = 20) -> list[Product]:
    """Поиск по подстроке в названии, без учёта регистра."""
    term = (term or "").strip()
    if not term:
        return []
    return (
        db.query(Product)
        .options(selectinload(Product.images))
        .filter(Product.name.ilike(f"%{term}%"))
        .order_by(Product.name)
        .limit(limit)
        .all()
    )


def list_categories(db: Session) -> list[str]:
    rows = db.query(Product.category).filter(Product.category.isnot(None)).distinct().order_by(Product.category)
    return [category for (category,) in rows]


def create_product(db: Session, data: dict, image_urls: list[str] | None = None) -> Product:
    """Создаёт товар; первое изображение становится основным."""
    product = Product(**data)
    for index, url in enumerate(image_urls or []):
        product.images.append(ProductImage(image_url=url, is_primary=index == 0, display_order=index))
    db.add(product)
    db.commit()
    logger.info(f"Product {product.id} created: {product.name}")
    return get_product(db, product.id)


def update_product(db: Session, product_id: str, updates: dict) -> Product:
    """
    Меняет поля товара. Смена цены не затрагивает уже оформленные заказы:
    в строках заказа хранится price_at_time.
    """
    product = get_product(db, product_id)
    for field, value in updates.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


def update_stock(db: Session, product_id: str, quantity: int) -> Product:
    product = get_product(db, product_id)
    product.stock_quantity = quantity
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: str) -> None:
    product = get_product(db, product_id)
    db.delete(product)
    try:
        db.commit()
    except IntegrityError as e:
        # order_items ссылаются на товар с ON DELETE RESTRICT
        db.rollback()
        raise Conflict("Product is referenced by existing orders") from e
    logger.info(f"Product {product_id} deleted")


def add_image(db: Session, product_id: str, image_url: str, is_primary: bool = False) -> ProductImage:
    """Добавляет изображение в конец списка; основное может быть только одно."""
    product = get_product(db, product_id)
    next_order = max((image.display_order for image in product.images), default=-1) + 1
    if is_primary:
        for image in product.images:
            image.is_primary = False
    image = ProductImage(image_url=image_url, is_primary=is_primary, display_order=next_order)
    product.images.append(image)
    db.commit()
    db.refresh(image)
    return image
