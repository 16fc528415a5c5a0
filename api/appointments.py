# api/appointments.py
"""
Appointment booking endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import Appointment, NotificationType
from core.extensions import limiter
from middleware.security import require_admin
from services.notifications import get_notification_service
from services.records import tenant_repository

appointments_bp = Blueprint('appointments', __name__)
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'phone', 'service', 'date', 'time')


def _appointments():
    return tenant_repository(Appointment, order_by=Appointment.created_at)


@appointments_bp.route('', methods=['POST'])
@limiter.limit(lambda: current_app.config['SUBMISSION_RATE_LIMIT'])
def submit_appointment():
    """Public booking form submission"""
    clean = current_app.security_manager.clean_text
    data = request.get_json(silent=True) or {}

    fields = {name: clean(data.get(name)) for name in REQUIRED_FIELDS}
    if not all(fields.values()):
        return jsonify({'error': 'Name, phone, service, date, and time are required.'}), 400

    email = clean(data.get('email'))
    if email:
        try:
            email = current_app.security_manager.normalize_email(email)
        except ValueError as e:
            return jsonify({'error': f'Invalid email address: {e}'}), 400

    try:
        appointment = _appointments().create({
            'name': fields['name'],
            'phone': fields['phone'],
            'email': email or None,
            'service': fields['service'],
            'appointment_date': fields['date'],
            'appointment_time': fields['time'],
            'message': clean(data.get('message')) or None,
        })
    except Exception as e:
        logger.error(f"Error submitting appointment: {e}", exc_info=True)
        return jsonify({'error': 'Failed to submit appointment'}), 500

    get_notification_service().notify(
        f"New appointment request from {appointment.name} for {appointment.service} "
        f"on {appointment.appointment_date} at {appointment.appointment_time}",
        NotificationType.INFO
    )

    return jsonify({
        'message': 'Appointment submitted successfully!',
        'appointmentId': appointment.id
    }), 201


@appointments_bp.route('', methods=['GET'])
@require_admin
def list_appointments():
    return jsonify([appointment.to_dict() for appointment in _appointments().list()])


@appointments_bp.route('/<int:appointment_id>', methods=['DELETE'])
@require_admin
def delete_appointment(appointment_id):
    if not _appointments().delete(appointment_id):
        return jsonify({'error': 'Appointment not found'}), 404
    return jsonify({'message': 'Appointment deleted successfully'})
