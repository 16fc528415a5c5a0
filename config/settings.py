# config/settings.py
"""
Application configuration classes

Values come from the environment (a .env file is loaded by the app factory)
with development-friendly defaults. Select a class with FLASK_ENV or the
create_app() argument.
"""

import os
import secrets
from datetime import timedelta


def _env_float(name, default=None):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return float(value)


class Config:
    """Settings shared by every environment"""

    # Tenant discriminator stored on every row
    SITE_KEY = os.environ.get('SITE_KEY')

    VERSION = os.environ.get('VERSION', '1.0.0')

    # Session and token settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)
    JWT_SECRET = os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES = timedelta(days=int(os.environ.get('JWT_EXPIRES_DAYS', 7)))

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///site_platform.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SLOW_QUERY_THRESHOLD = 1.0  # seconds
    SLOW_REQUEST_THRESHOLD = 1000  # milliseconds

    # Redis is optional; used for rate-limit storage and health checks
    REDIS_URL = os.environ.get('REDIS_URL')

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = '1000 per hour'
    RATELIMIT_HEADERS_ENABLED = True
    LOGIN_RATE_LIMIT = '5 per minute'
    SUBMISSION_RATE_LIMIT = '10 per minute'

    # CORS for the API surface
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Push channel
    SOCKETIO_PATH = os.environ.get('SOCKETIO_PATH', 'api/ws')
    SOCKETIO_CORS_ALLOWED_ORIGINS = '*'
    HUB_SEND_TIMEOUT = _env_float('HUB_SEND_TIMEOUT')
    NOTIFICATION_HISTORY_DEFAULT = 20
    NOTIFICATION_HISTORY_MAX = 100

    # Payments
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_CURRENCY = os.environ.get('STRIPE_CURRENCY', 'usd')

    # Request limits
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2MB of JSON is plenty

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'camera=(), microphone=(), geolocation=()',
    }


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    SITE_KEY = 'test-site'
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    REDIS_URL = None
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    HUB_SEND_TIMEOUT = None
    STRIPE_SECRET_KEY = None
    LOG_LEVEL = 'WARNING'
    LOG_FILE = None


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
    }


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
