# app.py
"""
Flask Application Factory for the multi-tenant small-business site platform

This application factory wires together:
- Tenant-scoped REST API (bookings, blog, contact, settings, payments)
- Real-time notification push over SocketIO
- JWT authentication for the admin dashboard
- Error handling, logging and health monitoring
- Environment-based configuration management
"""

import os
import atexit
import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Optional

import click
import redis
from dotenv import load_dotenv
from flask import Flask, request, jsonify, g
from sqlalchemy import event, text
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

# Config classes read the environment at import time
load_dotenv()

from config.settings import CONFIGS, ProductionConfig
from core.database_models import db, AdminUser
from core.extensions import cors, limiter, migrate
from core.hub import NotificationHub
from core.security_manager import init_security_manager
from api.appointments import appointments_bp
from api.auth import auth_bp
from api.blogs import blogs_bp
from api.contact import contact_bp
from api.notifications import notifications_bp
from api.payments import payments_bp
from api.projects import projects_bp
from api.realtime import init_socketio
from api.roadmap import roadmap_bp
from api.settings import settings_bp
from api.system import system_bp
from middleware.security import security_headers


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    This setup provides:
    - Journal-style stream output for the process supervisor
    - Optional rotating file log with call-site detail
    - Quiet third-party loggers outside debug
    """
    # Remove default Flask handlers to avoid duplicate logs
    app.logger.handlers.clear()

    stream_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO').upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if not any(getattr(h, '_site_platform', False) for h in root_logger.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(stream_formatter)
        stream_handler._site_platform = True
        root_logger.addHandler(stream_handler)

    app.logger.setLevel(log_level)
    app.logger.propagate = True

    log_file = app.config.get('LOG_FILE')
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('socketio').setLevel(logging.WARNING)
        logging.getLogger('engineio').setLevel(logging.WARNING)


def create_redis_client(app: Flask) -> Optional[redis.Redis]:
    """
    Create the Redis client when REDIS_URL is configured

    Redis backs rate-limit storage in production and is reported by the
    detailed health check.
    """
    redis_url = app.config.get('REDIS_URL')
    if not redis_url:
        return None

    client = redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30
    )

    try:
        client.ping()
        app.logger.info("Redis client connected successfully")
    except redis.ConnectionError as e:
        app.logger.error(f"Redis connection failed: {e}")
        if app.config.get('REDIS_REQUIRED', False):
            raise

    return client


def configure_database(app: Flask) -> None:
    """
    Bind SQLAlchemy and log slow queries
    """
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        engine = db.engine

        @event.listens_for(engine, "before_cursor_execute")
        def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            context._query_start_time = datetime.now()

        @event.listens_for(engine, "after_cursor_execute")
        def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total = (datetime.now() - context._query_start_time).total_seconds()
            if total > app.config.get('SLOW_QUERY_THRESHOLD', 1.0):
                app.logger.warning(f"Slow query ({total:.2f}s): {statement[:100]}...")

    database_url = app.config['SQLALCHEMY_DATABASE_URI']
    app.logger.info(f"Database configured: {database_url.split('@')[-1] if '@' in database_url else database_url}")


def configure_security(app: Flask) -> None:
    """
    Configure token handling, rate limiting and CORS
    """
    init_security_manager(app)

    limiter.init_app(app)

    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', ['*'])}},
        allow_headers=['Content-Type', 'Authorization']
    )

    app.logger.info("Security features configured")


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints with proper URL prefixes
    """
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(appointments_bp, url_prefix='/api/appointments')
    app.register_blueprint(contact_bp, url_prefix='/api/contact')
    app.register_blueprint(blogs_bp, url_prefix='/api/blogs')
    app.register_blueprint(projects_bp, url_prefix='/api/projects')
    app.register_blueprint(roadmap_bp, url_prefix='/api/roadmap')
    app.register_blueprint(settings_bp, url_prefix='/api/settings')
    app.register_blueprint(payments_bp, url_prefix='/api/payment')
    app.register_blueprint(system_bp, url_prefix='/api')

    app.logger.info("Application blueprints registered")


def configure_error_handlers(app: Flask) -> None:
    """
    Return JSON bodies for every error the API can produce
    """
    def error_response(status_code, error, message):
        return jsonify({
            'error': error,
            'message': message,
            'status_code': status_code
        }), status_code

    @app.errorhandler(400)
    def bad_request(error):
        app.logger.warning(f"Bad request from {request.remote_addr}: {error}")
        return error_response(400, 'Bad Request', 'Invalid request format or parameters')

    @app.errorhandler(401)
    def unauthorized(error):
        app.logger.warning(f"Unauthorized access attempt from {request.remote_addr}")
        return error_response(401, 'Unauthorized', 'Authentication required')

    @app.errorhandler(403)
    def forbidden(error):
        app.logger.warning(f"Forbidden access attempt from {request.remote_addr}")
        return error_response(403, 'Forbidden', 'Insufficient permissions')

    @app.errorhandler(404)
    def not_found(error):
        return error_response(404, 'Not Found', 'The requested resource was not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response(405, 'Method Not Allowed', f'{request.method} is not supported here')

    @app.errorhandler(413)
    def payload_too_large(error):
        return error_response(413, 'Payload Too Large', 'Request body exceeds the size limit')

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        app.logger.warning(f"Rate limit exceeded for {request.remote_addr}")
        return error_response(429, 'Rate Limit Exceeded', 'Too many requests. Please try again later.')

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal server error: {error}", exc_info=True)
        return error_response(500, 'Internal Server Error', 'An unexpected error occurred')

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return e

        db.session.rollback()
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response(500, 'Internal Server Error', 'An unexpected error occurred')


def configure_health_checks(app: Flask, redis_client: Optional[redis.Redis]) -> None:
    """
    Configure health check endpoints for monitoring and load balancing
    """
    @app.route('/health')
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': app.config.get('VERSION', '1.0.0')
        })

    @app.route('/health/detailed')
    def detailed_health_check():
        """Detailed health check with component status"""
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'components': {},
            'connected_clients': app.hub.size()
        }

        try:
            db.session.execute(text('SELECT 1'))
            health_status['components']['database'] = 'healthy'
        except Exception as e:
            db.session.rollback()
            health_status['components']['database'] = f'unhealthy: {str(e)}'
            health_status['status'] = 'unhealthy'

        if redis_client is not None:
            try:
                redis_client.ping()
                health_status['components']['redis'] = 'healthy'
            except redis.RedisError as e:
                health_status['components']['redis'] = f'unhealthy: {str(e)}'
                health_status['status'] = 'unhealthy'

        status_code = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), status_code


def configure_request_middleware(app: Flask) -> None:
    """
    Configure request/response middleware for security and monitoring
    """
    @app.before_request
    def before_request():
        g.start_time = datetime.now(timezone.utc)

    @app.after_request
    def after_request(response):
        response = security_headers(response)

        if hasattr(g, 'start_time'):
            duration = (datetime.now(timezone.utc) - g.start_time).total_seconds() * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 1000):
                app.logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")

        return response


def register_commands(app: Flask) -> None:
    """
    Register admin CLI commands (flask init-db, flask create-admin)
    """
    @app.cli.command('init-db')
    def init_db():
        """Create database tables."""
        db.create_all()
        click.echo('Database tables created')

    @app.cli.command('create-admin')
    @click.argument('username')
    @click.password_option()
    def create_admin(username, password):
        """Create an admin for this site, or reset its password."""
        site_key = app.config['SITE_KEY']
        password_hash, salt = app.security_manager.hash_password(password)

        user = AdminUser.query.filter_by(site_key=site_key, username=username).first()
        if user is None:
            user = AdminUser(site_key=site_key, username=username)
            db.session.add(user)
            action = 'created'
        else:
            action = 'updated'

        user.password_hash = password_hash
        user.password_salt = salt
        db.session.commit()
        click.echo(f"Admin '{username}' {action} for site {site_key}")


def create_app(config_name: str = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__,
                instance_relative_config=True,
                static_folder='static')

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(CONFIGS.get(config_name, ProductionConfig))
    app.config['START_TIME'] = datetime.now(timezone.utc)

    if not app.config.get('SITE_KEY'):
        raise RuntimeError('SITE_KEY is not configured')

    # Configure proxy handling for production deployment behind nginx
    if config_name == 'production':
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    setup_logging(app)
    app.logger.info(f"Starting site platform for {app.config['SITE_KEY']} in {config_name} mode")

    redis_client = create_redis_client(app)
    app.redis_client = redis_client

    configure_database(app)
    configure_security(app)

    # Process-wide push registry; handlers reach it through the app
    hub = NotificationHub(send_timeout=app.config.get('HUB_SEND_TIMEOUT'))
    app.hub = hub

    app.socketio = init_socketio(app, hub)

    register_blueprints(app)
    configure_error_handlers(app)
    configure_health_checks(app, redis_client)
    configure_request_middleware(app)
    register_commands(app)

    with app.app_context():
        if config_name in ('development', 'testing'):
            db.create_all()
            app.logger.info("Database tables created")

    if not app.testing:
        atexit.register(hub.shutdown)

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    app = create_app('development')

    # Run with SocketIO support
    app.socketio.run(
        app,
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', 5000)),
        debug=True,
        use_reloader=True,
        allow_unsafe_werkzeug=True
    )
