# storefront/schemas/order.py
# Схемы заказа. total_amount есть только в ответах: клиент его не присылает.
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.order import OrderStatus


class OrderLineIn(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    name: str | None = None


class PlaceOrderRequest(BaseModel):
    shipping_address: str = Field(min_length=1)
    items: list[OrderLineIn]


class CheckoutRequest(BaseModel):
    shipping_address: str = Field(min_length=1)


class StatusUpdateRequest(BaseModel):
    status: str


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str | None = None
    quantity: int
    price_at_time: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    total_amount: Decimal
    status: OrderStatus
    shipping_address: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItemOut] = []


class RecentOrderOut(BaseModel):
    id: str
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime | None = None
    total_items: int


class OrderStatsOut(BaseModel):
    total_orders: int
    total_spent: Decimal
    orders_by_status: dict[str, int]
