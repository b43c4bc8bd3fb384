# src/storefront/database/models.py
from decimal import Decimal

from sqlalchemy import (Column, Integer, String, Float, Boolean, Numeric,
                        ForeignKey, Text, DateTime, CheckConstraint, UniqueConstraint, event)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from . import Base
from storefront.errors import ValidationError

CENT = Decimal('0.01')

USER_ROLES = ('customer', 'admin')
ORDER_STATUSES = ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled')
PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded')
# Статусы заказа, при которых покупка считается совершенной
PURCHASED_STATUSES = ('confirmed', 'shipped', 'delivered')

DEFAULT_MIN_STOCK = 5
DEFAULT_MAX_STOCK = 100


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


def _enum_check(column: str, values: tuple, name: str) -> CheckConstraint:
    allowed = ', '.join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


class User(Base):
    __tablename__ = 'users'
    __table_args__ = (_enum_check('role', USER_ROLES, 'ck_users_role'),)

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False, default='')
    last_name = Column(String(50), nullable=False, default='')
    role = Column(String(20), nullable=False, default='customer')
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    orders = relationship("Order", back_populates="user")
    reviews = relationship("Review", back_populates="user")

    @validates('role')
    def validate_role(self, key, value):
        if value not in USER_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(USER_ROLES)}")
        return value

    @validates('email')
    def validate_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Без каскадного удаления: при удалении категории у товаров обнуляется category_id
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (CheckConstraint('price >= 0', name='ck_products_price'),)

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    sku = Column(String(100), unique=True, nullable=True)
    image_url = Column(String(500), nullable=True)
    category_id = Column(Integer, ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    average_rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    inventory = relationship("Inventory", back_populates="product", uselist=False,
                             cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")
    order_items = relationship("OrderItem", back_populates="product")

    @validates('price')
    def validate_price(self, key, value):
        if value is None:
            raise ValidationError("Price is required")
        price = to_money(value)
        if price < 0:
            raise ValidationError("Price cannot be negative")
        return price

    @validates('sku')
    def validate_sku(self, key, value):
        return value.strip().upper() if value else None


class Inventory(Base):
    __tablename__ = 'inventory'
    __table_args__ = (CheckConstraint('quantity >= 0', name='ck_inventory_quantity'),)

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'),
                        unique=True, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=DEFAULT_MIN_STOCK)
    max_stock = Column(Integer, nullable=False, default=DEFAULT_MAX_STOCK)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="inventory")

    @validates('quantity', 'min_stock', 'max_stock')
    def validate_non_negative(self, key, value):
        if value is not None and value < 0:
            raise ValidationError(f"{key} cannot be negative")
        return value

    def check_limits(self):
        min_stock = DEFAULT_MIN_STOCK if self.min_stock is None else self.min_stock
        max_stock = DEFAULT_MAX_STOCK if self.max_stock is None else self.max_stock
        if max_stock <= min_stock:
            raise ValidationError("max_stock must be greater than min_stock")

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    @property
    def stock_status(self) -> str:
        if self.is_out_of_stock:
            return 'out_of_stock'
        if self.is_low_stock:
            return 'low_stock'
        return 'available'

    @property
    def stock_percentage(self) -> int:
        if not self.max_stock:
            return 0
        return round(self.quantity / self.max_stock * 100)


@event.listens_for(Inventory, 'before_insert')
@event.listens_for(Inventory, 'before_update')
def _check_inventory_limits(mapper, connection, target):
    target.check_limits()


class Order(Base):
    __tablename__ = 'orders'
    __table_args__ = (
        _enum_check('status', ORDER_STATUSES, 'ck_orders_status'),
        _enum_check('payment_status', PAYMENT_STATUSES, 'ck_orders_payment_status'),
        CheckConstraint('total_amount >= 0', name='ck_orders_total_amount'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(String(30), nullable=False, default='pending', index=True)
    payment_status = Column(String(30), nullable=False, default='pending')
    total_amount = Column(Numeric(10, 2), nullable=False)
    shipping_address = Column(Text, nullable=False)
    billing_address = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderItem.id")

    @validates('status')
    def validate_status(self, key, value):
        if value not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {value}")
        return value

    @validates('payment_status')
    def validate_payment_status(self, key, value):
        if value not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {value}")
        return value

    @validates('total_amount')
    def validate_total_amount(self, key, value):
        amount = to_money(value)
        if amount < 0:
            raise ValidationError("Total amount cannot be negative")
        return amount

    def can_be_cancelled(self) -> bool:
        return self.status in ('pending', 'confirmed')


class OrderItem(Base):
    __tablename__ = 'order_items'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_items_quantity'),
        CheckConstraint('unit_price >= 0', name='ck_order_items_unit_price'),
        CheckConstraint('total_price >= 0', name='ck_order_items_total_price'),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=func.now())

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Цена позиции фиксируется в момент заказа
        if self.total_price is None and self.unit_price is not None and self.quantity is not None:
            self.total_price = to_money(self.unit_price * self.quantity)

    @validates('quantity')
    def validate_quantity(self, key, value):
        if value is None or value <= 0:
            raise ValidationError("Item quantity must be greater than 0")
        return value

    @validates('unit_price', 'total_price')
    def validate_prices(self, key, value):
        amount = to_money(value)
        if amount < 0:
            raise ValidationError(f"{key} cannot be negative")
        return amount


class Review(Base):
    __tablename__ = 'reviews'
    __table_args__ = (
        UniqueConstraint('product_id', 'user_id', name='uq_reviews_product_user'),
        CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating'),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    is_verified_purchase = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now(), index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    @validates('rating')
    def validate_rating(self, key, value):
        if value is None or not 1 <= value <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        return value

    @validates('comment')
    def validate_comment(self, key, value):
        if value is not None and len(value) > 1000:
            raise ValidationError("Comment cannot exceed 1000 characters")
        return value
