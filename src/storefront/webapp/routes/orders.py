# src/storefront/webapp/routes/orders.py
from flask import Blueprint, request

from storefront.errors import AuthorizationError
from storefront.schemas import OrderCreate, StatusUpdate, PaymentStatusUpdate, parse
from storefront.services import order_processor
from storefront.utils.helpers import order_to_dict, order_item_to_dict
from ..auth import login_required, admin_required, current_user, ensure_owner_or_admin
from ..common import get_db, ok, paged, json_body, page_args

bp = Blueprint('orders', __name__, url_prefix='/api/orders')


def _owned_order(order_id: int):
    order = order_processor.get_order(get_db(), order_id)
    ensure_owner_or_admin(order.user_id)
    return order


@bp.route('')
@admin_required
def list_orders():
    page, limit = page_args()
    rows, total = order_processor.list_orders(get_db(), page, limit,
                                              status=request.args.get('status'),
                                              user_id=request.args.get('user_id', type=int))
    return paged(rows, total, page, limit, lambda o: order_to_dict(o, with_items=False))


@bp.route('/my-orders')
@login_required
def my_orders():
    page, limit = page_args()
    rows, total = order_processor.list_user_orders(get_db(), current_user().id, page, limit,
                                                   status=request.args.get('status'))
    return paged(rows, total, page, limit, order_to_dict)


@bp.route('/stats')
@admin_required
def stats():
    return ok(order_processor.order_stats(get_db(), user_id=request.args.get('user_id', type=int)))


@bp.route('/<int:order_id>')
@login_required
def get_order(order_id):
    return ok(order_to_dict(_owned_order(order_id)))


@bp.route('/number/<order_number>')
@login_required
def get_order_by_number(order_number):
    order = order_processor.get_order_by_number(get_db(), order_number)
    ensure_owner_or_admin(order.user_id)
    return ok(order_to_dict(order))


@bp.route('/<int:order_id>/items')
@login_required
def get_order_items(order_id):
    order = _owned_order(order_id)
    items = order_processor.get_order_items(get_db(), order.id)
    return ok([order_item_to_dict(item) for item in items])


@bp.route('', methods=['POST'])
@login_required
def create_order():
    payload = parse(OrderCreate, json_body())
    user_id = payload.user_id or current_user().id
    ensure_owner_or_admin(user_id)

    order = order_processor.create_order(
        get_db(), user_id, payload.items,
        shipping_address=payload.shipping_address,
        billing_address=payload.billing_address,
        notes=payload.notes,
    )
    return ok(order_to_dict(order), status=201, message='Order created')


@bp.route('/<int:order_id>/status', methods=['PUT'])
@login_required
def update_order_status(order_id):
    payload = parse(StatusUpdate, json_body())
    order = _owned_order(order_id)
    # Покупатель может только отменить свой заказ, остальные переходы делает администратор
    if payload.status != 'cancelled' and not current_user().is_admin:
        raise AuthorizationError("Only administrators can change order status")
    order = order_processor.update_order_status(get_db(), order.id, payload.status)
    return ok(order_to_dict(order), message='Order status updated')


@bp.route('/<int:order_id>/payment', methods=['PUT'])
@admin_required
def update_payment_status(order_id):
    payload = parse(PaymentStatusUpdate, json_body())
    order = order_processor.update_payment_status(get_db(), order_id, payload.payment_status)
    return ok(order_to_dict(order), message='Payment status updated')


@bp.route('/<int:order_id>', methods=['DELETE'])
@login_required
def cancel_order(order_id):
    order = _owned_order(order_id)
    reason = json_body(required=False).get('reason')
    order = order_processor.cancel_order(get_db(), order.id, reason)
    return ok(order_to_dict(order), message='Order cancelled')
