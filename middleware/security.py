# middleware/security.py
"""
Security Middleware for Request Processing
"""

from flask import request, jsonify, g, current_app
from functools import wraps
import logging

from core.security_manager import InvalidTokenError

logger = logging.getLogger(__name__)


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in current_app.config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)
    return response


def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header[len('Bearer '):].strip() or None


def require_admin(f):
    """Decorator to require a valid admin bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        security_manager = current_app.security_manager

        token = _bearer_token()
        if not token:
            security_manager.log_security_event('unauthorized_access_attempt', {
                'endpoint': request.endpoint,
                'method': request.method
            })
            return jsonify({'error': 'Unauthorized. No token provided.'}), 401

        try:
            g.admin = security_manager.verify_token(token)
        except InvalidTokenError as e:
            security_manager.log_security_event('invalid_token', {
                'endpoint': request.endpoint,
                'reason': str(e)
            })
            return jsonify({'error': 'Invalid or expired token.'}), 403

        return f(*args, **kwargs)
    return decorated_function
