# api/projects.py
"""
Portfolio project endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import Project
from middleware.security import require_admin
from services.records import tenant_repository

projects_bp = Blueprint('projects', __name__)
logger = logging.getLogger(__name__)


def _projects():
    return tenant_repository(Project, order_by=Project.created_at)


def _project_input():
    clean = current_app.security_manager.clean_text
    data = request.get_json(silent=True) or {}
    return {
        'title': clean(data.get('title'), max_length=255),
        'description': clean(data.get('description')),
        # Image is a URL or a path under the static uploads directory
        'image': clean(data.get('image'), max_length=500),
    }


@projects_bp.route('', methods=['GET'])
def list_projects():
    projects = _projects().list()
    logger.debug(f"{len(projects)} projects retrieved")
    return jsonify([project.to_dict() for project in projects])


@projects_bp.route('', methods=['POST'])
@require_admin
def create_project():
    values = _project_input()
    if not all(values.values()):
        return jsonify({'error': 'Title, description, and image are required.'}), 400

    project = _projects().create(values)
    return jsonify({'message': 'Project created successfully.', 'id': project.id}), 201


@projects_bp.route('/<int:project_id>', methods=['PUT'])
@require_admin
def update_project(project_id):
    values = _project_input()
    if not values['title'] or not values['description']:
        return jsonify({'error': 'Title and description are required.'}), 400
    if not values['image']:
        del values['image']

    if _projects().update(project_id, values) is None:
        return jsonify({'error': 'Project not found.'}), 404
    return jsonify({'message': 'Project updated successfully.'})


@projects_bp.route('/<int:project_id>', methods=['DELETE'])
@require_admin
def delete_project(project_id):
    if not _projects().delete(project_id):
        return jsonify({'error': 'Project not found.'}), 404
    return jsonify({'message': 'Project deleted successfully.'})
