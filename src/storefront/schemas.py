# src/storefront/schemas.py
"""
Схемы входных данных API.

Каждая pydantic-модель описывает тело одного запроса и проверяет его
при создании. Ошибки pydantic превращаются в ValidationError (400).
"""
from decimal import Decimal
from typing import List, Literal, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from storefront.errors import ValidationError

SLUG_PATTERN = r'^[a-z0-9]+(?:-[a-z0-9]+)*$'
EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


def parse(schema, data):
    """Создаёт модель из тела запроса или бросает ValidationError."""
    if data is None:
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        details = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in e.errors()
        ]
        first = details[0] if details else {'field': '', 'message': 'invalid input'}
        raise ValidationError(f"Invalid field '{first['field']}': {first['message']}", details=details)


# --- Склад и заказы ---
class StockItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class StockItemsRequest(BaseModel):
    items: List[StockItem] = Field(..., min_length=1)


class StockUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
    operation: Literal['add', 'subtract', 'set'] = 'set'


class StockAdjustment(BaseModel):
    adjustment: int
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator('adjustment')
    @classmethod
    def non_zero(cls, value):
        if value == 0:
            raise ValueError('adjustment cannot be zero')
        return value


class StockLimits(BaseModel):
    min_stock: int = Field(..., ge=0)
    max_stock: int = Field(..., ge=1)

    @model_validator(mode='after')
    def max_above_min(self):
        if self.max_stock <= self.min_stock:
            raise ValueError('max_stock must be greater than min_stock')
        return self


class OrderCreate(BaseModel):
    user_id: Optional[int] = Field(None, gt=0)
    items: List[StockItem] = Field(..., min_length=1)
    shipping_address: str = Field(..., min_length=10, max_length=1000)
    billing_address: Optional[str] = Field(None, min_length=10, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class PaymentStatusUpdate(BaseModel):
    payment_status: str = Field(..., min_length=1)


# --- Отзывы ---
class ReviewCreate(BaseModel):
    user_id: Optional[int] = Field(None, gt=0)
    product_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


# --- Каталог ---
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: str = Field(..., min_length=2, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    slug: Optional[str] = Field(None, min_length=2, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('name', 'slug', 'is_active')
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError('field cannot be null')
        return value


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    sku: Optional[str] = Field(None, min_length=3, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = Field(None, gt=0)
    is_active: bool = True
    initial_stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    sku: Optional[str] = Field(None, min_length=3, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None

    @field_validator('name', 'price', 'is_active')
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError('field cannot be null')
        return value


# --- Аккаунты ---
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field('', max_length=50)
    last_name: str = Field('', max_length=50)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)

    @field_validator('username', 'email', 'first_name', 'last_name')
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError('field cannot be null')
        return value


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)
