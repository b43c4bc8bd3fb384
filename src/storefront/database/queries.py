# src/storefront/database/queries.py
from sqlalchemy import func, desc
from sqlalchemy.orm import Session, Query

from storefront.database.models import (User, Category, Product, Inventory, Order, OrderItem, Review,
                                        PURCHASED_STATUSES)


# --- Общие ---
def paginate(query: Query, page: int, limit: int):
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, total


# --- User Queries ---
def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


# --- Category Queries ---
def get_category(db: Session, category_id: int) -> Category | None:
    return db.get(Category, category_id)


def get_category_by_slug(db: Session, slug: str) -> Category | None:
    return db.query(Category).filter(Category.slug == slug).first()


def get_category_by_name(db: Session, name: str) -> Category | None:
    return db.query(Category).filter(Category.name == name).first()


# --- Product Queries ---
def get_product(db: Session, product_id: int) -> Product | None:
    return db.get(Product, product_id)


def get_product_by_sku(db: Session, sku: str) -> Product | None:
    return db.query(Product).filter(Product.sku == sku.strip().upper()).first()


def count_product_order_items(db: Session, product_id: int) -> int:
    return db.query(OrderItem).filter(OrderItem.product_id == product_id).count()


# --- Inventory Queries ---
def get_inventory(db: Session, product_id: int) -> Inventory | None:
    return db.query(Inventory).filter(Inventory.product_id == product_id).first()


def decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Атомарно списывает остаток, только если его хватает. Возвращает False, если не хватило."""
    updated = (db.query(Inventory)
               .filter(Inventory.product_id == product_id, Inventory.quantity >= quantity)
               .update({Inventory.quantity: Inventory.quantity - quantity}, synchronize_session='fetch'))
    return updated == 1


def increment_stock(db: Session, product_id: int, quantity: int) -> bool:
    updated = (db.query(Inventory)
               .filter(Inventory.product_id == product_id)
               .update({Inventory.quantity: Inventory.quantity + quantity}, synchronize_session='fetch'))
    return updated == 1


def active_inventory(db: Session) -> Query:
    return db.query(Inventory).join(Inventory.product).filter(Product.is_active.is_(True))


# --- Order Queries ---
def get_order(db: Session, order_id: int) -> Order | None:
    return db.get(Order, order_id)


def get_order_by_number(db: Session, order_number: str) -> Order | None:
    return db.query(Order).filter(Order.order_number == order_number).first()


def get_user_orders(db: Session, user_id: int, status: str | None = None) -> Query:
    query = db.query(Order).filter(Order.user_id == user_id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(desc(Order.created_at), desc(Order.id))


def has_purchased(db: Session, user_id: int, product_id: int) -> bool:
    item = (db.query(OrderItem.id)
            .join(OrderItem.order)
            .filter(OrderItem.product_id == product_id,
                    Order.user_id == user_id,
                    Order.status.in_(PURCHASED_STATUSES))
            .first())
    return item is not None


# --- Review Queries ---
def get_review(db: Session, review_id: int) -> Review | None:
    return db.get(Review, review_id)


def find_user_review(db: Session, user_id: int, product_id: int) -> Review | None:
    return db.query(Review).filter(Review.user_id == user_id, Review.product_id == product_id).first()


def rating_aggregate(db: Session, product_id: int) -> tuple[float, int]:
    """Полный пересчёт AVG/COUNT по отзывам товара."""
    average, count = (db.query(func.avg(Review.rating), func.count(Review.id))
                      .filter(Review.product_id == product_id)
                      .one())
    return float(average or 0), int(count or 0)
