# scripts/check_db.py
# Проверяет подключение к DATABASE_URL, наличие таблиц магазина
# и что total_amount каждого заказа равен сумме его строк.
from sqlalchemy import create_engine, inspect, select, text
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.money import compute_total
from storefront.models.order import Order, OrderItem
import storefront.models.user
import storefront.models.product
import storefront.models.cart

EXPECTED_TABLES = ("users", "products", "product_images", "cart_items", "orders", "order_items")


def find_mismatched_totals(session: Session) -> list[tuple[str, object, object]]:
    """(order_id, stored, expected) для заказов, у которых сумма разошлась со строками."""
    items = {}
    for order_id, quantity, price in session.execute(
        select(OrderItem.order_id, OrderItem.quantity, OrderItem.price_at_time)
    ):
        items.setdefault(order_id, []).append((quantity, price))
    mismatched = []
    for order_id, stored in session.execute(select(Order.id, Order.total_amount)):
        expected = compute_total(items.get(order_id, []))
        if stored != expected:
            mismatched.append((order_id, stored, expected))
    return mismatched


def main():
    url = settings.DATABASE_URL
    print('Trying to connect to:', url)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    try:
        with engine.connect() as conn:
            print('Connection OK, SELECT 1 ->', conn.execute(text("SELECT 1")).scalar())
    except Exception as e:
        print('Connection failed:', e)
        return 1

    existing = set(inspect(engine).get_table_names())
    missing = [t for t in EXPECTED_TABLES if t not in existing]
    if missing:
        print('Missing tables:', ', '.join(missing))
        return 1
    print('All tables present:', ', '.join(EXPECTED_TABLES))

    with Session(engine) as session:
        mismatched = find_mismatched_totals(session)
        orders = session.query(Order).count()
    if mismatched:
        for order_id, stored, expected in mismatched:
            print(f'Order {order_id}: total_amount={stored}, items sum={expected}')
        return 1
    print(f'Order totals OK ({orders} orders checked)')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
