"""Pytest configuration: in-memory SQLite, seeded users/products, API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.security import Principal, create_access_token
from storefront.db.base import Base
from storefront.models.order import Order, OrderItem  # noqa: F401  (регистрирует хуки пересчёта)
from storefront.models.product import Product
from storefront.models.user import RoleEnum, User
import storefront.models.cart  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _user(db, email, role=RoleEnum.customer):
    user = User(email=email, full_name=email.split("@")[0], role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer_user(db):
    return _user(db, "alice@example.com")


@pytest.fixture
def other_user(db):
    return _user(db, "bob@example.com")


@pytest.fixture
def admin_user(db):
    return _user(db, "admin@example.com", role=RoleEnum.admin)


@pytest.fixture
def customer(customer_user):
    return Principal.from_user(customer_user)


@pytest.fixture
def other_customer(other_user):
    return Principal.from_user(other_user)


@pytest.fixture
def admin(admin_user):
    return Principal.from_user(admin_user)


@pytest.fixture
def products(db):
    headphones = Product(
        name="Wireless Headphones", price=Decimal("89.99"), stock_quantity=50, category="electronics"
    )
    watch = Product(name="Smart Watch", price=Decimal("199.99"), stock_quantity=20, category="electronics")
    novel = Product(name="Paper Novel", price=Decimal("12.50"), stock_quantity=100, category="books")
    db.add_all([headphones, watch, novel])
    db.commit()
    return {"p1": headphones, "p2": watch, "book": novel}


@pytest.fixture
def scenario_a_lines(products):
    return [
        {"product_id": products["p1"].id, "quantity": 2, "unit_price": 89.99},
        {"product_id": products["p2"].id, "quantity": 1, "unit_price": 199.99},
    ]


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from storefront.db.session import get_db
    from storefront.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
