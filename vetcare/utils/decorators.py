from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, get_jwt
from vetcare.extensions import db
from vetcare.models import User


def get_current_identity():
    """Returns (user_id, role) from JWT claims."""
    claims = get_jwt()
    return get_jwt_identity(), claims.get("role")


def get_current_user():
    user_id = get_jwt_identity()
    return db.session.get(User, user_id) if user_id else None


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('veterinarian', 'admin')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            """
            Require that the current JWT-authenticated user has one of the given roles.
            Must be used together with @jwt_required() on the route.
            """
            user = get_current_user()

            if not user or not user.is_active:
                return jsonify({
                    'success': False,
                    'error': 'Authentication required'
                }), 401

            if user.role not in roles:
                return jsonify({
                    'success': False,
                    'error': f'Permission denied. Required roles: {", ".join(roles)}'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
