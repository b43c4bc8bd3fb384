# src/storefront/webapp/auth.py
import logging
from functools import wraps

from flask import g, request

from storefront.errors import AuthenticationError, AuthorizationError
from storefront.services import accounts
from .common import get_db, get_settings

logger = logging.getLogger(__name__)


def _bearer_token() -> str:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token:
        raise AuthenticationError("Access token required")
    return token.strip()


def login_required(func):
    """Декоратор для защиты роутов: кладёт пользователя из токена в g.current_user."""
    @wraps(func)
    def decorated(*args, **kwargs):
        g.current_user = accounts.authenticate_token(get_db(), get_settings(), _bearer_token())
        return func(*args, **kwargs)
    return decorated


def admin_required(func):
    @wraps(func)
    @login_required
    def decorated(*args, **kwargs):
        if not g.current_user.is_admin:
            logger.warning(f"Неавторизованный доступ к {request.path} от пользователя {g.current_user.id}")
            raise AuthorizationError("Administrator permissions required")
        return func(*args, **kwargs)
    return decorated


def current_user():
    return g.current_user


def ensure_owner_or_admin(owner_id: int):
    user = g.current_user
    if not user.is_admin and user.id != owner_id:
        raise AuthorizationError("You do not have permission to access this resource")
