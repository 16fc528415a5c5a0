# api/system.py
"""
System information and dashboard summary
"""

import platform
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app

from core.database_models import Appointment, BlogPost, ContactMessage, Project, RoadmapItem
from middleware.security import require_admin
from services.notifications import get_notification_service
from services.records import tenant_repository

system_bp = Blueprint('system', __name__)


@system_bp.route('/system/info', methods=['GET'])
def system_info():
    started = current_app.config['START_TIME']
    return jsonify({
        'framework': 'Flask',
        'version': current_app.config['VERSION'],
        'python_version': platform.python_version(),
        'platform': platform.platform(),
        'uptime_seconds': int((datetime.now(timezone.utc) - started).total_seconds()),
        'connected_clients': current_app.hub.size(),
    })


@system_bp.route('/dashboard/summary', methods=['GET'])
@require_admin
def dashboard_summary():
    return jsonify({
        'site_key': current_app.config['SITE_KEY'],
        'appointments': tenant_repository(Appointment).count(),
        'contact_messages': tenant_repository(ContactMessage).count(),
        'blogs': tenant_repository(BlogPost).count(),
        'projects': tenant_repository(Project).count(),
        'roadmap_items': tenant_repository(RoadmapItem).count(),
        'notifications': get_notification_service().store.count(),
        'connected_clients': current_app.hub.size(),
    })
