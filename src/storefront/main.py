# src/storefront/main.py
import logging
import sys

from storefront.config import Settings
from storefront.database import make_engine, init_db, check_db_connection
from storefront.webapp import create_app

logger = logging.getLogger(__name__)


def main():
    """Инициализирует базу данных и запускает API."""
    settings = Settings.from_env()
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, settings.log_level, logging.INFO)
    )

    engine = make_engine(settings.database_url)
    if not init_db(engine, seed=settings.seed_demo_data):
        logger.error("Не удалось инициализировать БД. Завершение работы.")
        sys.exit(1)
    if not check_db_connection(engine):
        logger.error("Не удалось подключиться к БД. Завершение работы.")
        sys.exit(1)
    engine.dispose()

    app = create_app(settings)
    logger.info(f"Запуск API на http://{settings.host}:{settings.port} (режим: {settings.environment})")
    try:
        app.run(host=settings.host, port=settings.port, debug=settings.is_development, use_reloader=False)
    except KeyboardInterrupt:
        logger.info("Завершение работы по запросу пользователя (Ctrl+C)")


if __name__ == "__main__":
    main()
