# src/storefront/utils/helpers.py
from decimal import Decimal


def money(value) -> float:
    return float(Decimal(value or 0).quantize(Decimal('0.01')))


def iso(value):
    return value.isoformat() if value else None


def pagination_meta(page: int, total_items: int, per_page: int) -> dict:
    """Метаданные страницы для списков."""
    total_pages = (total_items + per_page - 1) // per_page
    return {
        'page': page,
        'limit': per_page,
        'total': total_items,
        'total_pages': total_pages,
    }


def user_to_dict(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'role': user.role,
        'is_active': user.is_active,
        'last_login': iso(user.last_login),
        'created_at': iso(user.created_at),
    }


def category_to_dict(category) -> dict:
    return {
        'id': category.id,
        'name': category.name,
        'slug': category.slug,
        'description': category.description,
        'is_active': category.is_active,
    }


def inventory_to_dict(inventory, with_product: bool = False) -> dict:
    data = {
        'id': inventory.id,
        'product_id': inventory.product_id,
        'quantity': inventory.quantity,
        'min_stock': inventory.min_stock,
        'max_stock': inventory.max_stock,
        'stock_status': inventory.stock_status,
        'stock_percentage': inventory.stock_percentage,
        'updated_at': iso(inventory.updated_at),
    }
    if with_product:
        product = inventory.product
        data['product'] = {'id': product.id, 'name': product.name, 'sku': product.sku,
                           'price': money(product.price)}
    return data


def product_to_dict(product) -> dict:
    inventory = product.inventory
    return {
        'id': product.id,
        'name': product.name,
        'description': product.description,
        'price': money(product.price),
        'sku': product.sku,
        'image_url': product.image_url,
        'category': category_to_dict(product.category) if product.category else None,
        'category_id': product.category_id,
        'is_active': product.is_active,
        'average_rating': product.average_rating,
        'review_count': product.review_count,
        'inventory': {
            'quantity': inventory.quantity,
            'stock_status': inventory.stock_status,
        } if inventory else None,
    }


def order_item_to_dict(item) -> dict:
    return {
        'id': item.id,
        'product_id': item.product_id,
        'product_name': item.product.name if item.product else None,
        'quantity': item.quantity,
        'unit_price': money(item.unit_price),
        'total_price': money(item.total_price),
    }


def order_to_dict(order, with_items: bool = True) -> dict:
    data = {
        'id': order.id,
        'order_number': order.order_number,
        'user_id': order.user_id,
        'status': order.status,
        'payment_status': order.payment_status,
        'total_amount': money(order.total_amount),
        'shipping_address': order.shipping_address,
        'billing_address': order.billing_address,
        'notes': order.notes,
        'created_at': iso(order.created_at),
        'updated_at': iso(order.updated_at),
    }
    if with_items:
        data['items'] = [order_item_to_dict(item) for item in order.items]
    return data


def review_to_dict(review) -> dict:
    return {
        'id': review.id,
        'product_id': review.product_id,
        'user_id': review.user_id,
        'username': review.user.username if review.user else None,
        'rating': review.rating,
        'comment': review.comment,
        'is_verified_purchase': review.is_verified_purchase,
        'created_at': iso(review.created_at),
        'updated_at': iso(review.updated_at),
    }
