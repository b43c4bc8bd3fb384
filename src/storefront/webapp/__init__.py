# src/storefront/webapp/__init__.py
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from storefront.config import Settings
from storefront.database import make_engine, make_scoped_session, create_tables
from storefront.errors import AppError, DatabaseError

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None):
    settings = settings or Settings.from_env()

    app = Flask(__name__, instance_relative_config=False)
    app.config.from_mapping(
        SECRET_KEY=settings.secret_key,
    )
    app.json.sort_keys = False
    logging.getLogger('werkzeug').setLevel(logging.ERROR)  # Убираем лишние логи от Flask

    engine = make_engine(settings.database_url)
    create_tables(engine)
    Session = make_scoped_session(engine)

    app.extensions['storefront'] = {
        'settings': settings,
        'engine': engine,
        'session': Session,
    }

    @app.teardown_request
    def remove_session(ex=None):
        """Автоматически закрывает сессию после каждого запроса."""
        Session.remove()

    @app.before_request
    def log_request():
        logger.info(f"{request.method} {request.path} - {request.remote_addr}")

    _register_error_handlers(app, settings)

    with app.app_context():
        from .routes import auth, catalog, inventory, orders, reviews
        for module in (auth, catalog, inventory, orders, reviews):
            app.register_blueprint(module.bp)

    @app.route('/api/health')
    def health():
        return jsonify({
            'success': True,
            'data': {'status': 'healthy', 'timestamp': datetime.now(timezone.utc).isoformat()},
        })

    return app


def _register_error_handlers(app: Flask, settings: Settings):

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        body = {'success': False, 'error': error.message, 'type': error.error_type}
        if error.details:
            body['details'] = error.details
        return jsonify(body), error.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        logger.warning(f"Нарушение ограничения БД на {request.method} {request.path}: {error.orig}")
        return jsonify({'success': False, 'error': 'Resource already exists or violates a constraint',
                        'type': 'conflict_error'}), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({'success': False, 'error': error.description, 'type': 'http_error'}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.error(f"Необработанная ошибка: {request.method} {request.path} "
                     f"в {datetime.now(timezone.utc).isoformat()}: {error}", exc_info=True)
        error_type = DatabaseError.error_type if isinstance(error, SQLAlchemyError) else AppError.error_type
        message = str(error) if settings.is_development else 'Internal server error'
        return jsonify({'success': False, 'error': message, 'type': error_type}), 500
