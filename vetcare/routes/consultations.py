from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vetcare.errors import ForbiddenError, NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import Booking
from vetcare.services import ConsultationService
from vetcare.utils.decorators import get_current_identity
from vetcare.utils.pagination import page_params

consultation_bp = Blueprint('consultation', __name__, url_prefix='/api/consultations')


def _parties(data, user_id, role):
    """(patient_id, veterinarian_id) for a new consultation, by caller role"""
    if data.get('booking_id'):
        booking = db.session.get(Booking, data['booking_id'])
        if not booking:
            raise NotFoundError('Booking', data['booking_id'])
        # A booking's consultation belongs to its parties only
        if role != 'admin' and user_id not in (booking.pet_owner_id, booking.veterinarian_id):
            raise ForbiddenError('You do not have access to this booking')
        return booking.pet_owner_id, data.get('veterinarian_id') or booking.veterinarian_id
    if role == 'veterinarian':
        return data.get('user_id'), user_id
    if role == 'admin':
        return data.get('user_id'), data.get('veterinarian_id')
    return user_id, data.get('veterinarian_id')


@consultation_bp.route('', methods=['POST'])
@jwt_required()
def create_consultation():
    """
    Body: veterinarian_id (or user_id when called by a vet), animal_type,
          symptom_description, booking_id?, animal_id?, scheduled_at?
    A booking that already has a consultation returns it with 200.
    """
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body must be JSON')
    if not data.get('booking_id'):
        for field in ('animal_type', 'symptom_description'):
            if not data.get(field):
                raise ValidationError(f'Field "{field}" is required')

    user_id, role = get_current_identity()
    patient_id, vet_id = _parties(data, user_id, role)
    if not patient_id:
        raise ValidationError('Field "user_id" is required')

    consultation, created = ConsultationService().create_consultation(patient_id, vet_id, data)
    return jsonify({'success': True, 'data': consultation.to_dict()}), 201 if created else 200


@consultation_bp.route('', methods=['GET'])
@jwt_required()
def list_consultations():
    user_id, role = get_current_identity()
    limit, offset = page_params()
    consultations = ConsultationService().list_consultations(
        user_id,
        role,
        limit=limit,
        offset=offset,
        status=request.args.get('status', type=str),
    )
    return jsonify({'success': True, 'data': [c.to_dict() for c in consultations]}), 200


@consultation_bp.route('/<consultation_id>', methods=['GET'])
@jwt_required()
def get_consultation(consultation_id):
    user_id, role = get_current_identity()
    consultation = ConsultationService().get_consultation(consultation_id)
    if role != 'admin' and user_id not in (consultation.user_id, consultation.veterinarian_id):
        raise ForbiddenError('You do not have access to this consultation')
    return jsonify({'success': True, 'data': consultation.to_dict()}), 200


@consultation_bp.route('/<consultation_id>', methods=['PUT'])
@jwt_required()
def update_consultation(consultation_id):
    """Clinical fields are written by the consulting vet"""
    data = request.get_json(silent=True) or {}
    user_id, role = get_current_identity()
    service = ConsultationService()
    consultation = service.get_consultation(consultation_id)
    if role != 'admin' and user_id != consultation.veterinarian_id:
        raise ForbiddenError('Only the consulting veterinarian can update this consultation')

    consultation = service.update_consultation(consultation_id, data)
    return jsonify({'success': True, 'data': consultation.to_dict()}), 200
