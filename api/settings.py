# api/settings.py
"""
Site settings endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import SiteSettings
from middleware.security import require_admin
from services.records import tenant_repository

settings_bp = Blueprint('settings', __name__)
logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ('heroHeadline', 'contactEmail', 'businessPhone')


@settings_bp.route('', methods=['GET'])
def get_site_settings():
    site_key = current_app.config['SITE_KEY']
    settings = tenant_repository(SiteSettings).first()
    if settings is None:
        logger.warning(f"No settings found for site key: {site_key}")
        return jsonify({'error': f'Settings not found for {site_key}'}), 404
    return jsonify(settings.to_dict())


@settings_bp.route('', methods=['PUT'])
@require_admin
def update_site_settings():
    """Create or replace this site's settings"""
    security_manager = current_app.security_manager
    site_key = current_app.config['SITE_KEY']
    data = request.get_json(silent=True) or {}

    values = {
        column: security_manager.clean_text(data.get(field)) or None
        for field, column in SiteSettings.FIELDS.items()
        if field != 'trackingCode'
    }
    # Tracking snippets are admin-authored script tags and stored as given
    values['tracking_code'] = data.get('trackingCode') or None

    if not all(values[SiteSettings.FIELDS[field]] for field in REQUIRED_SETTINGS):
        return jsonify({'error': 'Hero headline, contact email, and phone are required'}), 400

    try:
        values['contact_email'] = security_manager.normalize_email(values['contact_email'] or '')
    except ValueError as e:
        return jsonify({'error': f'Invalid contact email: {e}'}), 400

    repository = tenant_repository(SiteSettings)
    existing = repository.first()
    if existing is None:
        repository.create(values)
    else:
        repository.update(existing.id, values)

    logger.info(f"Settings updated for {site_key}")
    return jsonify({'message': f'Settings updated for {site_key}'})
