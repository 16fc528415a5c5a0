# api/notifications.py
"""
Notification broadcast and history endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import NotificationType
from middleware.security import require_admin
from services.notifications import get_notification_service, NotificationStoreError

notifications_bp = Blueprint('notifications', __name__)
logger = logging.getLogger(__name__)


def parse_history_limit(raw_value, default, maximum):
    """Clamp the requested history size to 1..maximum; junk falls back to default"""
    try:
        limit = int(raw_value)
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, maximum))


@notifications_bp.route('/broadcast', methods=['POST'])
@require_admin
def broadcast_notification():
    """Persist a notification and push it to every connected client"""
    data = request.get_json(silent=True) or {}
    message = current_app.security_manager.clean_text(data.get('message'))
    type_value = data.get('type')

    if not message or not type_value:
        return jsonify({'error': 'Missing message or type.'}), 400

    try:
        notification_type = NotificationType(type_value)
    except ValueError:
        return jsonify({
            'error': f"Invalid type. Expected one of: {', '.join(NotificationType.values())}."
        }), 400

    try:
        record = get_notification_service().create_notification(message, notification_type)
    except NotificationStoreError:
        return jsonify({'error': 'Failed to store notification.'}), 500

    logger.info(f"Notification {record['id']} broadcast by {request.remote_addr}")
    return jsonify({'success': True, 'notification': record})


@notifications_bp.route('/history', methods=['GET'])
def notification_history():
    """Most recent notifications for this site, newest first"""
    limit = parse_history_limit(
        request.args.get('limit'),
        current_app.config['NOTIFICATION_HISTORY_DEFAULT'],
        current_app.config['NOTIFICATION_HISTORY_MAX'],
    )
    try:
        return jsonify(get_notification_service().history(limit))
    except Exception as e:
        logger.error(f"Failed to fetch notification history: {e}", exc_info=True)
        return jsonify({'error': 'Unable to fetch notification history.'}), 500
