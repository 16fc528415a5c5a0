# api/roadmap.py
"""
Public product roadmap endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import RoadmapItem
from middleware.security import require_admin
from services.records import tenant_repository

roadmap_bp = Blueprint('roadmap', __name__)
logger = logging.getLogger(__name__)

# JSON field name -> column name
ROADMAP_FIELDS = {
    'title': 'title',
    'description': 'description',
    'status': 'status',
    'priority': 'priority',
    'targetRelease': 'target_release',
}


def _roadmap():
    return tenant_repository(RoadmapItem, order_by=RoadmapItem.created_at)


def _clean_tags(raw_tags):
    """List of non-empty cleaned tags, or None when the input is not a list"""
    if not isinstance(raw_tags, list):
        return None
    clean = current_app.security_manager.clean_text
    return [tag for tag in (clean(value, max_length=50) for value in raw_tags) if tag]


def _roadmap_input(data):
    """Cleaned roadmap values for the fields present in the request body"""
    clean = current_app.security_manager.clean_text
    values = {
        column: clean(data[field])
        for field, column in ROADMAP_FIELDS.items()
        if field in data
    }
    if 'tags' in data:
        values['tags'] = _clean_tags(data['tags'])
    return values


@roadmap_bp.route('', methods=['GET'])
def list_roadmap_items():
    return jsonify([item.to_dict() for item in _roadmap().list()])


@roadmap_bp.route('', methods=['POST'])
@require_admin
def create_roadmap_item():
    values = _roadmap_input(request.get_json(silent=True) or {})
    if not values.get('title') or not values.get('description'):
        return jsonify({'error': 'Title and description are required.'}), 400
    if values.get('tags', []) is None:
        return jsonify({'error': 'Tags must be a list.'}), 400

    # Blank optional fields fall back to the column defaults
    values = {column: value for column, value in values.items() if value or column == 'tags'}
    item = _roadmap().create(values)
    return jsonify(item.to_dict()), 201


@roadmap_bp.route('/<int:item_id>', methods=['PUT'])
@require_admin
def update_roadmap_item(item_id):
    values = _roadmap_input(request.get_json(silent=True) or {})
    if not values:
        return jsonify({'error': 'No roadmap fields to update.'}), 400
    if 'tags' in values and values['tags'] is None:
        return jsonify({'error': 'Tags must be a list.'}), 400
    if any(not values[column] for column in values if column != 'tags'):
        return jsonify({'error': 'Roadmap fields cannot be blank.'}), 400

    if _roadmap().update(item_id, values) is None:
        return jsonify({'error': 'Roadmap item not found'}), 404
    return jsonify({'message': 'Roadmap item updated'})


@roadmap_bp.route('/<int:item_id>', methods=['DELETE'])
@require_admin
def delete_roadmap_item(item_id):
    if not _roadmap().delete(item_id):
        return jsonify({'error': 'Roadmap item not found'}), 404
    return jsonify({'message': 'Roadmap item deleted'})
