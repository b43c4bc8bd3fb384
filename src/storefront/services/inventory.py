# src/storefront/services/inventory.py
import logging
from collections import OrderedDict

from sqlalchemy import and_
from sqlalchemy.orm import Session

from storefront.database import queries, transaction
from storefront.database.models import Inventory, Product
from storefront.errors import ValidationError, NotFoundError, BusinessLogicError

logger = logging.getLogger(__name__)

STOCK_MODES = ('add', 'subtract', 'set')


def _positive_int(value) -> bool:
    # bool является подклассом int, True не должен считаться количеством 1
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def merge_items(items) -> list[tuple[int, int]]:
    """
    Приводит позиции к списку пар (product_id, quantity).
    Принимает словари или объекты с атрибутами; повторы одного товара суммируются.
    """
    merged = OrderedDict()
    for item in items:
        if isinstance(item, dict):
            product_id, quantity = item.get('product_id'), item.get('quantity')
        else:
            product_id, quantity = getattr(item, 'product_id', None), getattr(item, 'quantity', None)
        if not _positive_int(product_id):
            raise ValidationError("Each item must have a valid product_id")
        if not _positive_int(quantity):
            raise ValidationError("Each item must have a positive quantity")
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


def get_inventory(db: Session, product_id: int) -> Inventory:
    inventory = queries.get_inventory(db, product_id)
    if not inventory:
        raise NotFoundError(f"Inventory not found for product {product_id}")
    return inventory


def _new_quantity(current: int, amount: int, mode: str) -> int:
    if mode == 'add':
        return current + amount
    if mode == 'subtract':
        if current - amount < 0:
            raise BusinessLogicError(f"Insufficient stock. Available: {current}, requested: {amount}")
        return current - amount
    return amount


def adjust_stock(db: Session, product_id: int, amount: int, mode: str = 'set') -> Inventory:
    if mode not in STOCK_MODES:
        raise ValidationError(f"Invalid stock operation: {mode}")
    if not isinstance(amount, int) or amount < 0:
        raise ValidationError("Stock amount must be a non-negative integer")

    with transaction(db):
        inventory = get_inventory(db, product_id)
        previous = inventory.quantity
        inventory.quantity = _new_quantity(previous, amount, mode)
    logger.info(f"Остаток товара {product_id} изменён ({mode} {amount}): {previous} -> {inventory.quantity}")
    return inventory


def add_stock(db: Session, product_id: int, amount: int) -> Inventory:
    """Пополнение склада с учётом потолка max_stock."""
    if not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Amount to add must be a positive integer")

    with transaction(db):
        inventory = get_inventory(db, product_id)
        if inventory.quantity + amount > inventory.max_stock:
            raise BusinessLogicError(
                f"Quantity exceeds maximum stock of {inventory.max_stock} (current: {inventory.quantity})")
        inventory.quantity += amount
    return inventory


def update_stock_limits(db: Session, product_id: int, min_stock: int, max_stock: int) -> Inventory:
    if min_stock < 0 or max_stock <= min_stock:
        raise ValidationError("min_stock must be non-negative and lower than max_stock")

    with transaction(db):
        inventory = get_inventory(db, product_id)
        inventory.min_stock = min_stock
        inventory.max_stock = max_stock
    return inventory


def process_adjustment(db: Session, product_id: int, delta: int, reason: str | None = None) -> Inventory:
    if not isinstance(delta, int) or delta == 0:
        raise ValidationError("Adjustment must be a non-zero integer")

    with transaction(db):
        inventory = get_inventory(db, product_id)
        previous = inventory.quantity
        if previous + delta < 0:
            raise BusinessLogicError("Adjustment would result in negative stock")
        inventory.quantity = previous + delta
    logger.info(f"Корректировка склада товара {product_id}: {previous} -> {inventory.quantity}. "
                f"Причина: {reason or 'не указана'}")
    return inventory


def check_availability(db: Session, items) -> dict:
    """Только чтение: сравнивает запрошенное количество с остатком по каждой позиции."""
    results = []
    all_available = True

    for product_id, requested in merge_items(items):
        inventory = queries.get_inventory(db, product_id)
        if not inventory:
            all_available = False
            results.append({
                'product_id': product_id,
                'product_name': None,
                'requested': requested,
                'available': 0,
                'in_stock': False,
                'message': 'Product not found',
            })
            continue

        in_stock = inventory.quantity >= requested
        all_available = all_available and in_stock
        results.append({
            'product_id': product_id,
            'product_name': inventory.product.name,
            'requested': requested,
            'available': inventory.quantity,
            'in_stock': in_stock,
            'message': 'Stock available' if in_stock else f"Insufficient stock. Available: {inventory.quantity}",
        })

    return {'all_available': all_available, 'items': results}


def unavailable_names(availability: dict) -> list[str]:
    return [item['product_name'] or f"Product ID {item['product_id']}"
            for item in availability['items'] if not item['in_stock']]


def reserve_items(db: Session, pairs: list[tuple[int, int]]):
    """
    Списывает остатки внутри уже открытой транзакции вызывающего кода.
    Сначала проверяются все позиции, затем каждая списывается условным UPDATE;
    если списание не прошло (конкурентный заказ), бросается BusinessLogicError
    и вызывающий откатывает всю транзакцию.
    """
    availability = check_availability(db, [{'product_id': p, 'quantity': q} for p, q in pairs])
    if not availability['all_available']:
        missing = [item['product_id'] for item in availability['items'] if item['product_name'] is None]
        if missing:
            raise NotFoundError(f"Inventory not found for product {missing[0]}")
        raise BusinessLogicError(f"Insufficient stock for: {', '.join(unavailable_names(availability))}")

    for product_id, quantity in pairs:
        if not queries.decrement_stock(db, product_id, quantity):
            raise BusinessLogicError(f"Insufficient stock for product {product_id}")


def release_items(db: Session, pairs: list[tuple[int, int]]):
    for product_id, quantity in pairs:
        if not queries.increment_stock(db, product_id, quantity):
            raise NotFoundError(f"Inventory not found for product {product_id}")


def reserve_stock(db: Session, items) -> dict:
    """Резервирует все позиции или ни одной."""
    pairs = merge_items(items)
    try:
        with transaction(db):
            reserve_items(db, pairs)
    except BusinessLogicError as e:
        logger.warning(f"Резерв отклонён: {e}")
        raise
    logger.info(f"Зарезервировано позиций: {len(pairs)}")
    return {'items': [_stock_line(db, product_id, quantity) for product_id, quantity in pairs]}


def release_stock(db: Session, items) -> dict:
    pairs = merge_items(items)
    with transaction(db):
        release_items(db, pairs)
    logger.info(f"Возвращено на склад позиций: {len(pairs)}")
    return {'items': [_stock_line(db, product_id, quantity) for product_id, quantity in pairs]}


def _stock_line(db: Session, product_id: int, quantity: int) -> dict:
    inventory = get_inventory(db, product_id)
    return {'product_id': product_id, 'quantity': quantity, 'remaining': inventory.quantity}


# --- Списки и статистика ---
def list_low_stock(db: Session, page: int = 1, limit: int = 10, threshold: int | None = None):
    query = queries.active_inventory(db)
    if threshold is not None:
        query = query.filter(Inventory.quantity <= threshold)
    else:
        query = query.filter(Inventory.quantity <= Inventory.min_stock)
    return queries.paginate(query.order_by(Inventory.quantity.asc(), Inventory.id), page, limit)


def list_out_of_stock(db: Session, page: int = 1, limit: int = 10):
    query = queries.active_inventory(db).filter(Inventory.quantity == 0)
    return queries.paginate(query.order_by(Inventory.updated_at.desc(), Inventory.id), page, limit)


def _count_out_of_stock(db: Session) -> int:
    return queries.active_inventory(db).filter(Inventory.quantity == 0).count()


def _count_low_stock(db: Session) -> int:
    return (queries.active_inventory(db)
            .filter(and_(Inventory.quantity > 0, Inventory.quantity <= Inventory.min_stock))
            .count())


def _count_over_stock(db: Session) -> int:
    return queries.active_inventory(db).filter(Inventory.quantity >= Inventory.max_stock).count()


def inventory_alerts(db: Session, include_over_stock: bool = False) -> dict:
    alerts = {
        'out_of_stock': _count_out_of_stock(db),
        'low_stock': _count_low_stock(db),
    }
    if include_over_stock:
        alerts['over_stock'] = _count_over_stock(db)
    return alerts


def inventory_stats(db: Session) -> dict:
    active = queries.active_inventory(db)
    total_units = sum(inv.quantity for inv in active)
    total_value = sum((inv.product.price * inv.quantity for inv in active), start=0)
    return {
        'total_products': active.count(),
        'out_of_stock': _count_out_of_stock(db),
        'low_stock': _count_low_stock(db),
        'over_stock': _count_over_stock(db),
        'total_units': total_units,
        'total_value': float(total_value),
    }


def get_product_inventory(db: Session, product_id: int) -> Inventory:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return get_inventory(db, product_id)
