# src/storefront/services/order_processor.py
import logging
import secrets
import time
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.database import queries, transaction
from storefront.database.models import (Order, OrderItem, ORDER_STATUSES, PAYMENT_STATUSES, to_money)
from storefront.errors import ValidationError, NotFoundError, ConflictError, BusinessLogicError
from storefront.services import inventory

logger = logging.getLogger(__name__)

# Допустимые переходы статуса заказа
STATUS_TRANSITIONS = {
    'pending': ('confirmed', 'cancelled'),
    'confirmed': ('shipped', 'cancelled'),
    'shipped': ('delivered',),
    'delivered': (),
    'cancelled': (),
}

PAYMENT_TRANSITIONS = {
    'pending': ('paid', 'failed'),
    'paid': ('refunded',),
    'failed': ('pending',),
    'refunded': (),
}


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000):X}-{secrets.token_hex(3)}".upper()


def get_order(db: Session, order_id: int) -> Order:
    order = queries.get_order(db, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_by_number(db: Session, order_number: str) -> Order:
    order = queries.get_order_by_number(db, order_number)
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_items(db: Session, order_id: int) -> list[OrderItem]:
    return list(get_order(db, order_id).items)


def _load_products(db: Session, pairs):
    products = {}
    for product_id, _ in pairs:
        product = queries.get_product(db, product_id)
        if not product:
            raise NotFoundError(f"Product with ID {product_id} not found")
        if not product.is_active:
            raise BusinessLogicError(f"Product '{product.name}' is not available for sale")
        products[product_id] = product
    return products


def calculate_order_total(products: dict, pairs) -> Decimal:
    total = sum((to_money(products[product_id].price) * quantity for product_id, quantity in pairs),
                start=Decimal('0'))
    return to_money(total)


def create_order(db: Session, user_id: int, items, shipping_address: str,
                 billing_address: str | None = None, notes: str | None = None) -> Order:
    """
    Оформляет заказ: проверяет пользователя и остатки, считает сумму по текущим ценам,
    создаёт заказ с позициями и списывает склад. Всё в одной транзакции,
    при любой ошибке ни заказ, ни списания не сохраняются.
    """
    if not items:
        raise ValidationError("Order must contain at least one item")
    pairs = inventory.merge_items(items)

    try:
        with transaction(db):
            user = queries.get_user(db, user_id)
            if not user:
                raise NotFoundError("User not found")

            products = _load_products(db, pairs)

            availability = inventory.check_availability(db, [{'product_id': p, 'quantity': q} for p, q in pairs])
            if not availability['all_available']:
                raise BusinessLogicError(
                    f"Insufficient stock for: {', '.join(inventory.unavailable_names(availability))}")

            order = Order(
                user_id=user.id,
                order_number=generate_order_number(),
                status='pending',
                payment_status='pending',
                total_amount=calculate_order_total(products, pairs),
                shipping_address=shipping_address,
                billing_address=billing_address or shipping_address,
                notes=notes,
            )
            for product_id, quantity in pairs:
                order.items.append(OrderItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=products[product_id].price,
                ))
            db.add(order)
            db.flush()

            inventory.reserve_items(db, pairs)
    except BusinessLogicError as e:
        logger.warning(f"Заказ для пользователя {user_id} отклонён: {e}")
        raise

    logger.info(f"Создан заказ {order.order_number} (#{order.id}) для пользователя {user_id} "
                f"на сумму {order.total_amount}")
    return order


def _order_pairs(order: Order) -> list[tuple[int, int]]:
    return [(item.product_id, item.quantity) for item in order.items]


def update_order_status(db: Session, order_id: int, new_status: str) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid order status: {new_status}")

    with transaction(db):
        order = get_order(db, order_id)
        current = order.status
        if new_status == current:
            return order
        if new_status not in STATUS_TRANSITIONS[current]:
            raise BusinessLogicError(f"Cannot change order status from '{current}' to '{new_status}'")

        if new_status == 'cancelled':
            inventory.release_items(db, _order_pairs(order))
            order.payment_status = 'refunded'
        elif new_status == 'confirmed':
            # Товар уже списан при оформлении, проверяем только, что складские записи на месте
            for product_id, _ in _order_pairs(order):
                if not queries.get_inventory(db, product_id):
                    raise BusinessLogicError(f"Cannot confirm the order: inventory for product {product_id} is gone")

        order.status = new_status

    logger.info(f"Статус заказа #{order_id} изменён: {current} -> {new_status}")
    return order


def cancel_order(db: Session, order_id: int, reason: str | None = None) -> Order:
    with transaction(db):
        order = get_order(db, order_id)
        if order.status == 'cancelled':
            raise ConflictError("Order is already cancelled")
        if order.status == 'delivered':
            raise BusinessLogicError("Cannot cancel an order that has been delivered")
        if not order.can_be_cancelled():
            raise BusinessLogicError(f"Cannot cancel an order with status '{order.status}'")

        inventory.release_items(db, _order_pairs(order))
        order.status = 'cancelled'
        order.payment_status = 'refunded'

    logger.info(f"Заказ #{order_id} отменён. Причина: {reason or 'не указана'}")
    return order


def update_payment_status(db: Session, order_id: int, new_status: str) -> Order:
    if new_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status: {new_status}")

    with transaction(db):
        order = get_order(db, order_id)
        current = order.payment_status
        if new_status == current:
            return order
        if new_status not in PAYMENT_TRANSITIONS[current]:
            raise BusinessLogicError(f"Cannot change payment status from '{current}' to '{new_status}'")
        order.payment_status = new_status

    logger.info(f"Статус оплаты заказа #{order_id}: {current} -> {new_status}")
    return order


# --- Списки и статистика ---
def list_orders(db: Session, page: int = 1, limit: int = 10, status: str | None = None,
                user_id: int | None = None):
    query = db.query(Order)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {status}")
        query = query.filter(Order.status == status)
    if user_id:
        query = query.filter(Order.user_id == user_id)
    return queries.paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)


def list_user_orders(db: Session, user_id: int, page: int = 1, limit: int = 10, status: str | None = None):
    if not queries.get_user(db, user_id):
        raise NotFoundError("User not found")
    return queries.paginate(queries.get_user_orders(db, user_id, status), page, limit)


def order_stats(db: Session, user_id: int | None = None) -> dict:
    base = db.query(Order)
    if user_id:
        base = base.filter(Order.user_id == user_id)

    count, revenue, average = base.with_entities(
        func.count(Order.id), func.sum(Order.total_amount), func.avg(Order.total_amount)).one()
    breakdown = dict(base.with_entities(Order.status, func.count(Order.id)).group_by(Order.status).all())

    return {
        'total_orders': int(count or 0),
        'total_revenue': round(float(revenue or 0), 2),
        'average_order_value': round(float(average or 0), 2),
        'status_breakdown': {status: int(breakdown.get(status, 0)) for status in ORDER_STATUSES},
    }
