import logging
import re

from flask import Blueprint, request, jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from sqlalchemy.exc import IntegrityError

from vetcare.errors import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from vetcare.extensions import db
from vetcare.models import User
from vetcare.utils.localtime import local_now

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

# Admins are provisioned out of band, never self-registered
SELF_REGISTER_ROLES = ('pet_owner', 'farmer', 'veterinarian')
MIN_PASSWORD_LENGTH = 8
_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _issue_tokens(user):
    # Identity must be a string for the JWT "sub" claim
    identity = str(user.id)
    additional_claims = {
        "email": user.email,
        "role": user.role,
    }
    return {
        'access_token': create_access_token(identity=identity, additional_claims=additional_claims, fresh=True),
        'refresh_token': create_refresh_token(identity=identity, additional_claims=additional_claims),
        'token_type': 'bearer',
    }


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body must be JSON')

    for field in ('email', 'password', 'first_name', 'last_name'):
        if not data.get(field):
            raise ValidationError(f'Field "{field}" is required')

    email = data['email'].strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError('Invalid email address')
    if len(data['password']) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')

    role = data.get('role') or 'pet_owner'
    if role not in SELF_REGISTER_ROLES:
        raise ValidationError(f'Invalid role. Must be one of: {", ".join(SELF_REGISTER_ROLES)}')

    if User.query.filter_by(email=email).first():
        raise ConflictError('An account with this email already exists')

    user = User(
        email=email,
        first_name=data['first_name'],
        last_name=data['last_name'],
        phone=data.get('phone'),
        role=role,
    )
    user.set_password(data['password'])
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('An account with this email already exists')

    logger.info("User registered: %s (%s)", user.id, role)
    return jsonify({
        'success': True,
        'data': user.to_dict(),
        **_issue_tokens(user),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Authenticate and return JWT tokens"""
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body must be JSON')

    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    if not email or not password:
        raise ValidationError('Email and password required')

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        raise UnauthorizedError('Invalid email or password')
    if not user.is_active:
        raise ForbiddenError('Account is deactivated')

    user.last_login = local_now()
    db.session.commit()

    return jsonify({
        'success': True,
        'data': user.to_dict(),
        **_issue_tokens(user),
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    user = db.session.get(User, get_jwt_identity())
    if not user or not user.is_active:
        raise UnauthorizedError()

    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role},
    )
    return jsonify({
        'success': True,
        'access_token': access_token,
        'token_type': 'bearer',
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = db.session.get(User, get_jwt_identity())
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    return jsonify({
        'success': True,
        'data': user.to_dict()
    }), 200
