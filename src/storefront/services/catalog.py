# src/storefront/services/catalog.py
import logging

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from storefront.database import queries, transaction
from storefront.database.models import Category, Product, Inventory, DEFAULT_MIN_STOCK, DEFAULT_MAX_STOCK
from storefront.errors import ValidationError, NotFoundError, ConflictError, BusinessLogicError

logger = logging.getLogger(__name__)


# --- Категории ---
def get_category(db: Session, category_id: int) -> Category:
    category = queries.get_category(db, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def get_category_by_slug(db: Session, slug: str) -> Category:
    category = queries.get_category_by_slug(db, slug)
    if not category:
        raise NotFoundError("Category not found")
    return category


def list_categories(db: Session, active_only: bool = False) -> list[Category]:
    query = db.query(Category)
    if active_only:
        query = query.filter(Category.is_active.is_(True))
    return query.order_by(Category.name).all()


def _check_category_unique(db: Session, name: str | None, slug: str | None, exclude_id: int | None = None):
    if name:
        existing = queries.get_category_by_name(db, name)
        if existing and existing.id != exclude_id:
            raise ConflictError("A category with this name already exists")
    if slug:
        existing = queries.get_category_by_slug(db, slug)
        if existing and existing.id != exclude_id:
            raise ConflictError("A category with this slug already exists")


def create_category(db: Session, name: str, slug: str, description: str | None = None,
                    is_active: bool = True) -> Category:
    with transaction(db):
        _check_category_unique(db, name, slug)
        category = Category(name=name, slug=slug, description=description, is_active=is_active)
        db.add(category)
    logger.info(f"Создана категория '{name}' (#{category.id})")
    return category


def update_category(db: Session, category_id: int, changes: dict) -> Category:
    with transaction(db):
        category = get_category(db, category_id)
        _check_category_unique(db, changes.get('name'), changes.get('slug'), exclude_id=category_id)
        for field, value in changes.items():
            setattr(category, field, value)
    return category


def delete_category(db: Session, category_id: int) -> bool:
    """Удаляет категорию; товары остаются без категории."""
    with transaction(db):
        category = get_category(db, category_id)
        for product in category.products:
            product.category_id = None
        db.delete(category)
    logger.info(f"Категория #{category_id} удалена")
    return True


def category_products(db: Session, category_id: int, page: int = 1, limit: int = 10):
    """Активные товары категории, новые первыми."""
    category = get_category(db, category_id)
    query = (db.query(Product)
             .filter(Product.category_id == category_id, Product.is_active.is_(True))
             .order_by(Product.created_at.desc(), Product.id.desc()))
    rows, total = queries.paginate(query, page, limit)
    return category, rows, total


def _product_counts_by_category(db: Session, limit: int | None = None):
    query = (db.query(Category, func.count(Product.id))
             .outerjoin(Category.products)
             .group_by(Category.id)
             .order_by(func.count(Product.id).desc(), Category.name))
    if limit:
        query = query.limit(limit)
    return [{'id': category.id, 'name': category.name, 'slug': category.slug, 'product_count': count}
            for category, count in query.all()]


def category_stats(db: Session) -> dict:
    total = db.query(Category).count()
    active = db.query(Category).filter(Category.is_active.is_(True)).count()
    return {
        'total': total,
        'active': active,
        'inactive': total - active,
        'top_categories': _product_counts_by_category(db, limit=5),
    }


# --- Товары ---
def get_product(db: Session, product_id: int) -> Product:
    product = queries.get_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_product_by_sku(db: Session, sku: str) -> Product:
    product = queries.get_product_by_sku(db, sku)
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(db: Session, page: int = 1, limit: int = 10, search: str | None = None,
                  category_id: int | None = None, active_only: bool = True):
    query = db.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern),
                                 Product.description.ilike(pattern),
                                 Product.sku.ilike(pattern)))
    return queries.paginate(query.order_by(Product.id.desc()), page, limit)


def _check_product_refs(db: Session, sku: str | None, category_id: int | None, exclude_id: int | None = None):
    if sku:
        existing = queries.get_product_by_sku(db, sku)
        if existing and existing.id != exclude_id:
            raise ConflictError("A product with this SKU already exists")
    if category_id and not queries.get_category(db, category_id):
        raise ValidationError("Category not found")


def create_product(db: Session, name: str, price, description: str | None = None, sku: str | None = None,
                   image_url: str | None = None, category_id: int | None = None, is_active: bool = True,
                   initial_stock: int = 0) -> Product:
    """Создаёт товар вместе с его складской записью."""
    if initial_stock < 0:
        raise ValidationError("Initial stock cannot be negative")

    with transaction(db):
        _check_product_refs(db, sku, category_id)
        product = Product(name=name, price=price, description=description, sku=sku,
                          image_url=image_url, category_id=category_id, is_active=is_active)
        product.inventory = Inventory(quantity=initial_stock,
                                      min_stock=DEFAULT_MIN_STOCK,
                                      max_stock=max(DEFAULT_MAX_STOCK, initial_stock))
        db.add(product)
    logger.info(f"Создан товар '{name}' (#{product.id}), остаток {initial_stock}")
    return product


def update_product(db: Session, product_id: int, changes: dict) -> Product:
    with transaction(db):
        product = get_product(db, product_id)
        _check_product_refs(db, changes.get('sku'), changes.get('category_id'), exclude_id=product_id)
        for field, value in changes.items():
            setattr(product, field, value)
    return product


def set_product_active(db: Session, product_id: int, is_active: bool) -> Product:
    with transaction(db):
        product = get_product(db, product_id)
        product.is_active = is_active
    return product


def delete_product(db: Session, product_id: int) -> bool:
    with transaction(db):
        product = get_product(db, product_id)
        ordered = queries.count_product_order_items(db, product_id)
        if ordered:
            raise BusinessLogicError(f"Cannot delete product: it is referenced by {ordered} order item(s)")
        db.delete(product)
    logger.info(f"Товар #{product_id} удалён")
    return True


# --- Поиск и подборки ---
def search_products(db: Session, term: str, limit: int = 10, category_id: int | None = None,
                    min_price=None, max_price=None) -> list[Product]:
    term = (term or '').strip()
    if not term:
        raise ValidationError("Search term is required")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError("min_price cannot be greater than max_price")

    pattern = f"%{term}%"
    query = (db.query(Product)
             .filter(Product.is_active.is_(True))
             .filter(or_(Product.name.ilike(pattern),
                         Product.description.ilike(pattern),
                         Product.sku.ilike(pattern))))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    return query.order_by(Product.name, Product.id).limit(limit).all()


def featured_products(db: Session, limit: int = 8, category_id: int | None = None) -> list[Product]:
    """Последние добавленные активные товары."""
    query = db.query(Product).filter(Product.is_active.is_(True))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    return query.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()


def related_products(db: Session, product_id: int, limit: int = 4) -> list[Product]:
    """Активные товары из той же категории. У товара без категории похожих нет."""
    product = get_product(db, product_id)
    if product.category_id is None:
        return []
    return (db.query(Product)
            .filter(Product.category_id == product.category_id,
                    Product.id != product_id,
                    Product.is_active.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
            .all())


def product_stats(db: Session) -> dict:
    total = db.query(Product).count()
    active = db.query(Product).filter(Product.is_active.is_(True)).count()
    with_inventory = db.query(Product).join(Product.inventory)
    return {
        'total': total,
        'active': active,
        'inactive': total - active,
        'low_stock': with_inventory.filter(Inventory.quantity <= Inventory.min_stock).count(),
        'out_of_stock': with_inventory.filter(Inventory.quantity == 0).count(),
        'by_category': _product_counts_by_category(db),
    }
