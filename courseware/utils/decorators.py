from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity

from courseware.models import User, UserRole


def current_user():
    """User behind the JWT identity (an email), or None"""
    email = get_jwt_identity()
    if not email:
        return None
    return User.query.filter_by(email=email).first()


def instructor_required(fn):
    """
    Decorator to require the instructor or admin role for panel endpoints.
    This decorator should be used after @jwt_required() decorator.

    Usage:
        @bp.route('/uploads/init', methods=['POST'])
        @jwt_required()
        @instructor_required
        def init_upload():
            ...
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = current_user()

        if not user:
            return jsonify({'error': 'User not found'}), 404

        if user.role not in (UserRole.INSTRUCTOR, UserRole.ADMIN):
            return jsonify({'error': 'Instructor access required'}), 403

        return fn(*args, **kwargs)

    return wrapper
