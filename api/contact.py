# api/contact.py
"""
Contact form endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import ContactMessage, NotificationType
from core.extensions import limiter
from middleware.security import require_admin
from services.notifications import get_notification_service
from services.records import tenant_repository

contact_bp = Blueprint('contact', __name__)
logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


def _messages():
    return tenant_repository(ContactMessage, order_by=ContactMessage.submitted_at)


@contact_bp.route('', methods=['POST'])
@limiter.limit(lambda: current_app.config['SUBMISSION_RATE_LIMIT'])
def submit_contact_message():
    clean = current_app.security_manager.clean_text
    data = request.get_json(silent=True) or {}

    name = clean(data.get('name'), max_length=255)
    phone = clean(data.get('phone'), max_length=50)
    message = clean(data.get('message'), max_length=MAX_MESSAGE_LENGTH)

    if not name or not phone or not message:
        return jsonify({'error': 'Name, phone, and message are required.'}), 400

    email = clean(data.get('email'))
    if email:
        try:
            email = current_app.security_manager.normalize_email(email)
        except ValueError as e:
            return jsonify({'error': f'Invalid email address: {e}'}), 400

    try:
        _messages().create({
            'name': name,
            'phone': phone,
            'email': email or None,
            'message': message,
        })
    except Exception as e:
        logger.error(f"Error submitting contact message: {e}", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500

    get_notification_service().notify(f"New contact message from {name}", NotificationType.INFO)

    return jsonify({'message': 'Message submitted successfully.'})


@contact_bp.route('', methods=['GET'])
@require_admin
def list_contact_messages():
    return jsonify([message.to_dict() for message in _messages().list()])


@contact_bp.route('/<int:message_id>', methods=['DELETE'])
@require_admin
def delete_contact_message(message_id):
    if not _messages().delete(message_id):
        return jsonify({'error': 'Message not found.'}), 404
    return jsonify({'message': 'Contact message deleted successfully.'})
