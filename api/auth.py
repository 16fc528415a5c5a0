# api/auth.py
"""
Admin Authentication API
"""

from flask import Blueprint, request, jsonify, current_app, g
import logging

from core.database_models import db, AdminUser, utcnow
from core.extensions import limiter
from middleware.security import require_admin

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def authenticate_admin(username: str, password: str):
    """Return the admin for this site if the credentials match"""
    security_manager = current_app.security_manager
    user = AdminUser.query.filter_by(
        site_key=current_app.config['SITE_KEY'],
        username=username
    ).first()
    if user is None:
        return None
    if not security_manager.verify_password(password, user.password_hash, user.password_salt):
        return None
    return user


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(lambda: current_app.config['LOGIN_RATE_LIMIT'])
def login():
    """
    Exchange admin credentials for a bearer token
    """
    security_manager = current_app.security_manager
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'success': False, 'message': 'Request body is required'}), 400

    username = data.get('username')
    password = data.get('password')

    if not isinstance(username, str) or not isinstance(password, str) or not username.strip():
        return jsonify({'success': False, 'message': 'Username and password are required'}), 400

    username = username.strip()
    user = authenticate_admin(username, password)
    if user is None:
        security_manager.log_security_event('login_failed', {'username': username})
        return jsonify({'success': False, 'message': 'Invalid username or password'}), 401

    user.last_login_at = utcnow()
    db.session.commit()

    token = security_manager.issue_token(user.id, user.username)
    security_manager.log_security_event('login_success', {'user_id': user.id, 'username': username})

    return jsonify({
        'success': True,
        'message': 'Authentication successful',
        'token': token
    })


@auth_bp.route('/me', methods=['GET'])
@require_admin
def current_admin():
    """Describe the admin behind the bearer token"""
    return jsonify({
        'id': g.admin.user_id,
        'username': g.admin.username,
        'site_key': g.admin.site_key,
        'expires_at': g.admin.expires_at.isoformat()
    })
