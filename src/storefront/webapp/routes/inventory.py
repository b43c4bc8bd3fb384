# src/storefront/webapp/routes/inventory.py
from flask import Blueprint, request

from storefront.schemas import StockItemsRequest, StockUpdate, StockAdjustment, StockLimits, parse
from storefront.services import inventory
from storefront.utils.helpers import inventory_to_dict
from ..auth import login_required, admin_required
from ..common import get_db, ok, paged, json_body, page_args, flag_arg

bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')


def _items_for_product(product_id: int):
    """Тело запроса: {items: [...]} или {quantity: n} для товара из URL."""
    body = json_body()
    if 'items' not in body:
        body = {'items': [{'product_id': product_id, 'quantity': body.get('quantity')}]}
    return parse(StockItemsRequest, body).items


@bp.route('/product/<int:product_id>')
def get_product_inventory(product_id):
    return ok(inventory_to_dict(inventory.get_product_inventory(get_db(), product_id), with_product=True))


@bp.route('/check', methods=['POST'])
def check_availability():
    payload = parse(StockItemsRequest, json_body())
    return ok(inventory.check_availability(get_db(), payload.items))


@bp.route('/product/<int:product_id>/stock', methods=['PUT'])
@admin_required
def update_stock(product_id):
    payload = parse(StockUpdate, json_body())
    record = inventory.adjust_stock(get_db(), product_id, payload.quantity, payload.operation)
    return ok(inventory_to_dict(record), message='Stock updated')


@bp.route('/product/<int:product_id>/restock', methods=['POST'])
@admin_required
def restock(product_id):
    payload = parse(StockUpdate, json_body())
    record = inventory.add_stock(get_db(), product_id, payload.quantity)
    return ok(inventory_to_dict(record), message='Stock added')


@bp.route('/product/<int:product_id>/adjust', methods=['POST'])
@admin_required
def adjust_inventory(product_id):
    payload = parse(StockAdjustment, json_body())
    record = inventory.process_adjustment(get_db(), product_id, payload.adjustment, payload.reason)
    return ok(inventory_to_dict(record), message='Inventory adjusted')


@bp.route('/product/<int:product_id>/limits', methods=['PUT'])
@admin_required
def update_limits(product_id):
    payload = parse(StockLimits, json_body())
    record = inventory.update_stock_limits(get_db(), product_id, payload.min_stock, payload.max_stock)
    return ok(inventory_to_dict(record), message='Stock limits updated')


@bp.route('/product/<int:product_id>/reserve', methods=['POST'])
@login_required
def reserve_stock(product_id):
    result = inventory.reserve_stock(get_db(), _items_for_product(product_id))
    return ok(result, message='Stock reserved')


@bp.route('/product/<int:product_id>/release', methods=['POST'])
@login_required
def release_stock(product_id):
    result = inventory.release_stock(get_db(), _items_for_product(product_id))
    return ok(result, message='Stock released')


@bp.route('/low-stock')
@login_required
def low_stock():
    page, limit = page_args()
    rows, total = inventory.list_low_stock(get_db(), page, limit, threshold=request.args.get('threshold', type=int))
    return paged(rows, total, page, limit, lambda inv: inventory_to_dict(inv, with_product=True))


@bp.route('/out-of-stock')
@login_required
def out_of_stock():
    page, limit = page_args()
    rows, total = inventory.list_out_of_stock(get_db(), page, limit)
    return paged(rows, total, page, limit, lambda inv: inventory_to_dict(inv, with_product=True))


@bp.route('/alerts')
@login_required
def alerts():
    return ok(inventory.inventory_alerts(get_db(), include_over_stock=flag_arg('include_over_stock')))


@bp.route('/stats')
def stats():
    return ok(inventory.inventory_stats(get_db()))
