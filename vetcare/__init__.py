from flask import Flask, jsonify, request
from .extensions import db, migrate, bcrypt, jwt, celery
import logging
import os

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    from vetcare.config import config, get_config, ProductionConfig
    config_class = config.get(config_name, config['default']) if config_name else get_config()
    app.config.from_object(config_class)

    # Ensure production mode if FLASK_ENV is production
    if config_class is ProductionConfig or (os.getenv('FLASK_ENV') == 'production' and not app.config.get('TESTING')):
        app.config['DEBUG'] = False
        ProductionConfig.validate(app.config)

    _setup_logging(app)

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    jwt.init_app(app)

    from vetcare.utils.cors import init_cors
    init_cors(app)

    _init_celery(app)
    _register_error_handlers(app)
    _register_jwt_handlers(app)

    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        if not app.debug:
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'DENY'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from . import models  # noqa: F401
        from .services import bridge  # noqa: F401  connects the session -> consultation receivers

        from .routes import (
            auth_bp,
            health_bp,
            schedule_bp,
            booking_bp,
            consultation_bp,
            video_session_bp,
        )
        app.register_blueprint(health_bp)
        app.register_blueprint(auth_bp)
        app.register_blueprint(schedule_bp)
        app.register_blueprint(booking_bp)
        app.register_blueprint(consultation_bp)
        app.register_blueprint(video_session_bp)

    return app


def _setup_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        # Attached to the package logger so service modules land in the file too
        logging.getLogger('vetcare').addHandler(file_handler)
        app.logger.addHandler(file_handler)
        app.logger.setLevel(level)
        app.logger.info('Application startup')


def _init_celery(app):
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
        beat_schedule={
            'mark-missed-bookings': {
                'task': 'tasks.mark_missed_bookings',
                'schedule': float(app.config['MISSED_SWEEP_INTERVAL_SECONDS']),
            },
        },
    )

    # Make celery tasks work with Flask app context
    class FlaskAppContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask


def _register_error_handlers(app):
    from vetcare.errors import AppError

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.error_code}: {error.message}", exc_info=True)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal Server Error: {error}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(e):
        from werkzeug.exceptions import HTTPException
        if isinstance(e, HTTPException):
            return jsonify({'success': False, 'error': e.description}), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500


def _register_jwt_handlers(app):
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'success': False, 'error': 'Authentication required', 'error_code': 'UNAUTHORIZED'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'success': False, 'error': f'Invalid token: {reason}', 'error_code': 'UNAUTHORIZED'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'success': False, 'error': 'Token has expired', 'error_code': 'UNAUTHORIZED'}), 401
