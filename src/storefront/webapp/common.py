# src/storefront/webapp/common.py
from flask import current_app, jsonify, request

from storefront.errors import ValidationError
from storefront.utils.helpers import pagination_meta

MAX_PAGE_SIZE = 100


def get_db():
    return current_app.extensions['storefront']['session']


def get_settings():
    return current_app.extensions['storefront']['settings']


def ok(data=None, status: int = 200, message: str | None = None, pagination: dict | None = None):
    body = {'success': True}
    if message:
        body['message'] = message
    body['data'] = data
    if pagination:
        body['pagination'] = pagination
    return jsonify(body), status


def paged(rows, total, page, limit, serializer):
    return ok([serializer(row) for row in rows], pagination=pagination_meta(page, total, limit))


def json_body(required: bool = True) -> dict:
    data = request.get_json(silent=True)
    if data is None and not required:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def page_args() -> tuple[int, int]:
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive integers")
    return page, min(limit, MAX_PAGE_SIZE)


def flag_arg(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes')
