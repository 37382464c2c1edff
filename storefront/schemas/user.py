# storefront/schemas/user.py
# Схемы регистрации и профиля покупателя.
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront.core.config import settings
from storefront.models.user import RoleEnum


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=settings.MIN_PASSWORD_LENGTH, max_length=128)
    full_name: str | None = None
    phone: str | None = None


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = Field(default=None, pattern=r"^\+?[\d\s\-()]{7,20}$")


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str | None = None
    phone: str | None = None
    role: RoleEnum
    created_at: datetime | None = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
