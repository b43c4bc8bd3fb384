# src/storefront/database/__init__.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session, scoped_session

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)

    if engine.dialect.name == 'sqlite':
        # SQLite по умолчанию не проверяет внешние ключи
        @event.listens_for(engine, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_scoped_session(engine: Engine) -> scoped_session:
    return scoped_session(make_session_factory(engine))


@contextmanager
def get_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction(session: Session):
    """Фиксирует изменения при успехе, откатывает при любом исключении."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def create_tables(engine: Engine) -> bool:
    # Импортируем модели здесь, чтобы они зарегистрировались в Base.metadata
    from storefront.database import models  # noqa: F401
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Таблицы успешно проверены/созданы.")
        return True
    except Exception as e:
        logger.error(f"❌ Ошибка создания таблиц: {e}", exc_info=True)
        return False


def check_db_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Ошибка подключения к БД: {e}", exc_info=True)
        return False


def init_db(engine: Engine, seed: bool = False) -> bool:
    if not create_tables(engine):
        return False
    if not seed:
        return True

    from storefront.database.seed import seed_demo_data
    try:
        with get_session(make_session_factory(engine)) as session:
            if seed_demo_data(session):
                logger.info("✅ Демонстрационные данные добавлены.")
            else:
                logger.info("✅ Товары уже есть в базе.")
        return True
    except Exception as e:
        logger.error(f"❌ Ошибка инициализации БД: {e}", exc_info=True)
        return False
