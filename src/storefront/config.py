# src/storefront/config.py
import os
import logging
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Корень проекта (поднимаемся из src/storefront/)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_SECRET_KEY = 'a_very_secret_key_for_development'


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    """Настройки приложения. Создаются один раз при старте и передаются явно."""
    database_url: str = f"sqlite:///{BASE_DIR / 'storefront.db'}"
    secret_key: str = DEFAULT_SECRET_KEY
    token_algorithm: str = 'HS256'
    token_expire_minutes: int = 60 * 24
    environment: str = 'production'
    host: str = '127.0.0.1'
    port: int = 5000
    seed_demo_data: bool = False
    log_level: str = 'INFO'

    @property
    def is_development(self) -> bool:
        return self.environment == 'development'

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> 'Settings':
        # .env лежит в корне проекта
        load_dotenv(env_file or BASE_DIR / '.env')

        try:
            port = int(os.getenv('PORT', cls.port))
            expire = int(os.getenv('TOKEN_EXPIRE_MINUTES', cls.token_expire_minutes))
        except ValueError as e:
            logger.warning(f"Некорректное числовое значение в .env: {e}. Используются значения по умолчанию.")
            port, expire = cls.port, cls.token_expire_minutes

        settings = cls(
            database_url=os.getenv('DATABASE_URL', cls.database_url),
            secret_key=os.getenv('SECRET_KEY', DEFAULT_SECRET_KEY),
            token_expire_minutes=expire,
            environment=os.getenv('ENVIRONMENT', cls.environment),
            host=os.getenv('HOST', cls.host),
            port=port,
            seed_demo_data=_env_flag('SEED_DEMO_DATA'),
            log_level=os.getenv('LOG_LEVEL', cls.log_level).upper(),
        )

        if settings.secret_key == DEFAULT_SECRET_KEY and not settings.is_development:
            logger.warning("SECRET_KEY не задан в .env, используется ключ для разработки!")
        return settings
