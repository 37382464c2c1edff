# storefront/schemas/product.py
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProductImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    image_url: str
    is_primary: bool
    display_order: int


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    price: Decimal
    stock_quantity: int
    category: str
    created_at: datetime | None = None
    images: list[ProductImageOut] = []


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = Field(default=None, max_length=500)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    category: str = Field(min_length=1)
    image_urls: list[str] = []


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, max_length=500)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, min_length=1)


class StockUpdate(BaseModel):
    stock_quantity: int = Field(ge=0)


class ImageCreate(BaseModel):
    image_url: str = Field(min_length=1)
    is_primary: bool = False
