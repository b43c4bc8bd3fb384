# src/storefront/webapp/routes/catalog.py
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request

from storefront.errors import ValidationError
from storefront.schemas import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate, parse
from storefront.services import catalog
from storefront.utils.helpers import category_to_dict, product_to_dict, pagination_meta
from ..auth import admin_required
from ..common import get_db, ok, paged, json_body, page_args, flag_arg, MAX_PAGE_SIZE

bp = Blueprint('catalog', __name__, url_prefix='/api')


def _limit_arg(default: int) -> int:
    limit = request.args.get('limit', default, type=int)
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, MAX_PAGE_SIZE)


def _price_arg(name: str):
    value = request.args.get(name)
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number")


# --- Категории ---
@bp.route('/categories')
def list_categories():
    categories = catalog.list_categories(get_db(), active_only=flag_arg('active'))
    return ok([category_to_dict(c) for c in categories])


@bp.route('/categories/stats')
def category_stats():
    return ok(catalog.category_stats(get_db()))


@bp.route('/categories/<int:category_id>')
def get_category(category_id):
    return ok(category_to_dict(catalog.get_category(get_db(), category_id)))


@bp.route('/categories/slug/<slug>')
def get_category_by_slug(slug):
    return ok(category_to_dict(catalog.get_category_by_slug(get_db(), slug)))


@bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    payload = parse(CategoryCreate, json_body())
    category = catalog.create_category(get_db(), **payload.model_dump())
    return ok(category_to_dict(category), status=201, message='Category created')


@bp.route('/categories/<int:category_id>', methods=['PUT'])
@admin_required
def update_category(category_id):
    payload = parse(CategoryUpdate, json_body())
    category = catalog.update_category(get_db(), category_id, payload.model_dump(exclude_unset=True))
    return ok(category_to_dict(category), message='Category updated')


@bp.route('/categories/<int:category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    catalog.delete_category(get_db(), category_id)
    return ok(None, message='Category deleted')


@bp.route('/categories/<int:category_id>/products')
def category_products(category_id):
    page, limit = page_args()
    category, rows, total = catalog.category_products(get_db(), category_id, page, limit)
    return ok({'category': category_to_dict(category), 'products': [product_to_dict(p) for p in rows]},
              pagination=pagination_meta(page, total, limit))


# --- Товары ---
@bp.route('/products')
def list_products():
    page, limit = page_args()
    rows, total = catalog.list_products(
        get_db(), page, limit,
        search=request.args.get('search'),
        category_id=request.args.get('category_id', type=int),
        active_only=not flag_arg('include_inactive'),
    )
    return paged(rows, total, page, limit, product_to_dict)


@bp.route('/products/search')
def search_products():
    products = catalog.search_products(
        get_db(), request.args.get('q', ''),
        limit=_limit_arg(10),
        category_id=request.args.get('category_id', type=int),
        min_price=_price_arg('min_price'),
        max_price=_price_arg('max_price'),
    )
    return ok([product_to_dict(p) for p in products])


@bp.route('/products/featured')
def featured_products():
    products = catalog.featured_products(get_db(), limit=_limit_arg(6),
                                         category_id=request.args.get('category_id', type=int))
    return ok([product_to_dict(p) for p in products])


@bp.route('/products/stats')
def product_stats():
    return ok(catalog.product_stats(get_db()))


@bp.route('/products/<int:product_id>')
def get_product(product_id):
    return ok(product_to_dict(catalog.get_product(get_db(), product_id)))


@bp.route('/products/<int:product_id>/related')
def related_products(product_id):
    products = catalog.related_products(get_db(), product_id, limit=_limit_arg(4))
    return ok([product_to_dict(p) for p in products])


@bp.route('/products/sku/<sku>')
def get_product_by_sku(sku):
    return ok(product_to_dict(catalog.get_product_by_sku(get_db(), sku)))


@bp.route('/products', methods=['POST'])
@admin_required
def create_product():
    payload = parse(ProductCreate, json_body())
    product = catalog.create_product(get_db(), **payload.model_dump())
    return ok(product_to_dict(product), status=201, message='Product created')


@bp.route('/products/<int:product_id>', methods=['PUT'])
@admin_required
def update_product(product_id):
    payload = parse(ProductUpdate, json_body())
    product = catalog.update_product(get_db(), product_id, payload.model_dump(exclude_unset=True))
    return ok(product_to_dict(product), message='Product updated')


@bp.route('/products/<int:product_id>/status', methods=['PATCH'])
@admin_required
def set_product_status(product_id):
    is_active = json_body().get('is_active')
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")
    product = catalog.set_product_active(get_db(), product_id, is_active)
    return ok(product_to_dict(product))


@bp.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    catalog.delete_product(get_db(), product_id)
    return ok(None, message='Product deleted')
