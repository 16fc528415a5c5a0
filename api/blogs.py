# api/blogs.py
"""
Blog post endpoints
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from core.database_models import BlogPost
from middleware.security import require_admin
from services.records import tenant_repository

blogs_bp = Blueprint('blogs', __name__)
logger = logging.getLogger(__name__)

BLOG_FIELDS = ('title', 'author', 'summary', 'content')


def _blogs():
    return tenant_repository(BlogPost, order_by=BlogPost.created_at)


def _blog_input():
    """Cleaned blog fields from the request, or None when any is missing"""
    clean = current_app.security_manager.clean_text
    data = request.get_json(silent=True) or {}
    values = {field: clean(data.get(field)) for field in BLOG_FIELDS}
    if not all(values.values()):
        return None
    return values


@blogs_bp.route('', methods=['GET'])
def list_blogs():
    return jsonify([post.to_dict() for post in _blogs().list()])


@blogs_bp.route('/<int:blog_id>', methods=['GET'])
def get_blog(blog_id):
    post = _blogs().get(blog_id)
    if post is None:
        return jsonify({'error': 'Blog post not found.'}), 404
    return jsonify(post.to_dict())


@blogs_bp.route('', methods=['POST'])
@require_admin
def create_blog():
    values = _blog_input()
    if values is None:
        return jsonify({'error': 'All fields are required.'}), 400

    post = _blogs().create(values)
    return jsonify({'message': 'Blog post created successfully.', 'id': post.id}), 201


@blogs_bp.route('/<int:blog_id>', methods=['PUT'])
@require_admin
def update_blog(blog_id):
    values = _blog_input()
    if values is None:
        return jsonify({'error': 'All fields are required.'}), 400

    if _blogs().update(blog_id, values) is None:
        return jsonify({'error': 'Blog post not found.'}), 404
    return jsonify({'message': 'Blog post updated successfully.'})


@blogs_bp.route('/<int:blog_id>', methods=['DELETE'])
@require_admin
def delete_blog(blog_id):
    if not _blogs().delete(blog_id):
        return jsonify({'error': 'Blog post not found or already deleted.'}), 404
    return jsonify({'message': 'Blog post deleted successfully.'})
