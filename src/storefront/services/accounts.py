# src/storefront/services/accounts.py
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.database import queries, transaction
from storefront.database.models import User
from storefront.errors import AuthenticationError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def issue_token(settings: Settings, user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.token_expire_minutes)
    payload = {
        'sub': str(user.id),
        'username': user.username,
        'role': user.role,
        'exp': expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.token_algorithm)


def decode_token(settings: Settings, token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
    if payload.get('sub') is None:
        raise AuthenticationError("Invalid or expired token")
    return payload


def get_user(db: Session, user_id: int) -> User:
    user = queries.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def register(db: Session, username: str, email: str, password: str, first_name: str = '',
             last_name: str = '', role: str = 'customer') -> User:
    with transaction(db):
        if queries.get_user_by_email(db, email):
            raise ConflictError("Email is already registered")
        if queries.get_user_by_username(db, username):
            raise ConflictError("Username is already taken")
        user = User(username=username, email=email, password_hash=hash_password(password),
                    first_name=first_name, last_name=last_name, role=role)
        db.add(user)
    logger.info(f"Зарегистрирован пользователь {username} (#{user.id})")
    return user


def login(db: Session, settings: Settings, email: str, password: str) -> tuple[User, str]:
    user = queries.get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Неудачная попытка входа для {email}")
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is disabled")

    with transaction(db):
        user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
    return user, issue_token(settings, user)


def authenticate_token(db: Session, settings: Settings, token: str) -> User:
    payload = decode_token(settings, token)
    try:
        user = queries.get_user(db, int(payload['sub']))
    except ValueError:
        raise AuthenticationError("Invalid or expired token")
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


# --- Профиль ---
def update_profile(db: Session, user_id: int, changes: dict) -> User:
    with transaction(db):
        user = get_user(db, user_id)
        email = changes.get('email')
        if email:
            existing = queries.get_user_by_email(db, email)
            if existing and existing.id != user.id:
                raise ConflictError("Email is already registered")
        username = changes.get('username')
        if username:
            existing = queries.get_user_by_username(db, username)
            if existing and existing.id != user.id:
                raise ConflictError("Username is already taken")
        for field, value in changes.items():
            setattr(user, field, value)
    logger.info(f"Пользователь #{user_id} обновил профиль: {', '.join(changes) or 'без изменений'}")
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> User:
    with transaction(db):
        user = get_user(db, user_id)
        if not verify_password(current_password, user.password_hash):
            logger.warning(f"Неверный текущий пароль при смене пароля пользователем #{user_id}")
            raise AuthenticationError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
    logger.info(f"Пользователь #{user_id} сменил пароль")
    return user


def deactivate_account(db: Session, user_id: int) -> User:
    with transaction(db):
        user = get_user(db, user_id)
        user.is_active = False
    logger.info(f"Аккаунт пользователя #{user_id} деактивирован")
    return user


def email_available(db: Session, email: str) -> bool:
    return queries.get_user_by_email(db, email) is None


def username_available(db: Session, username: str) -> bool:
    return queries.get_user_by_username(db, username) is None
