from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vetcare.errors import ForbiddenError, ValidationError
from vetcare.services import BookingService
from vetcare.utils.audit import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    BOOKING_RESCHEDULED,
    get_booking_action_logs,
    get_user_action_logs,
    log_booking_action,
)
from vetcare.utils.decorators import get_current_identity
from vetcare.utils.pagination import page_params

booking_bp = Blueprint('booking', __name__, url_prefix='/api/bookings')


def _load_for_party(service, booking_id):
    """Booking visible to its pet owner, its vet, or an admin"""
    user_id, role = get_current_identity()
    booking = service.get_booking(booking_id)
    if role != 'admin' and user_id not in (booking.pet_owner_id, booking.veterinarian_id):
        raise ForbiddenError('You do not have access to this booking')
    return booking


@booking_bp.route('', methods=['POST'])
@jwt_required()
def create_booking():
    """
    Book a slot with a veterinarian. The caller is the pet owner.
    Body: veterinarian_id, scheduled_date (YYYY-MM-DD), time_slot_start, time_slot_end,
          booking_type?, priority?, animal_id?, reason_for_visit?, symptoms?, notes?
    """
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body must be JSON')

    reason = data.get('reason_for_visit')
    if reason is not None and (not isinstance(reason, str) or not 5 <= len(reason) <= 1000):
        raise ValidationError('reason_for_visit must be between 5 and 1000 characters')

    user_id, role = get_current_identity()
    booking = BookingService().create_booking(user_id, data)
    log_booking_action(user_id, role, BOOKING_CREATED, booking.id, {
        'veterinarian_id': booking.veterinarian_id,
        'scheduled_date': booking.scheduled_date.isoformat(),
        'time_slot_start': booking.time_slot_start,
    })
    return jsonify({'success': True, 'data': booking.to_dict()}), 201


@booking_bp.route('', methods=['GET'])
@jwt_required()
def list_bookings():
    """
    Bookings visible to the caller.
    Query params: status, limit, offset
    """
    user_id, role = get_current_identity()
    limit, offset = page_params()
    page = BookingService().list_bookings(
        user_id,
        role,
        limit=limit,
        offset=offset,
        status=request.args.get('status', type=str),
    )
    return jsonify({
        'success': True,
        'data': [b.to_dict() for b in page['items']],
        'pagination': {
            'total': page['total'],
            'limit': page['limit'],
            'offset': page['offset'],
            'has_more': page['has_more'],
        }
    }), 200


@booking_bp.route('/logs/mine', methods=['GET'])
@jwt_required()
def my_booking_logs():
    user_id, _ = get_current_identity()
    limit, offset = page_params()
    logs = get_user_action_logs(user_id, limit=limit, offset=offset)
    return jsonify({'success': True, 'data': [entry.to_dict() for entry in logs]}), 200


@booking_bp.route('/<booking_id>', methods=['GET'])
@jwt_required()
def get_booking(booking_id):
    booking = _load_for_party(BookingService(), booking_id)
    return jsonify({'success': True, 'data': booking.to_dict()}), 200


@booking_bp.route('/<booking_id>/confirm', methods=['PUT'])
@jwt_required()
def confirm_booking(booking_id):
    service = BookingService()
    user_id, role = get_current_identity()
    booking = service.get_booking(booking_id)
    if role != 'admin' and user_id != booking.veterinarian_id:
        raise ForbiddenError('Only the assigned veterinarian can confirm this booking')

    booking = service.confirm_booking(booking_id)
    log_booking_action(user_id, role, BOOKING_CONFIRMED, booking_id)
    return jsonify({'success': True, 'data': booking.to_dict()}), 200


@booking_bp.route('/<booking_id>/cancel', methods=['PUT'])
@jwt_required()
def cancel_booking(booking_id):
    data = request.get_json(silent=True) or {}
    service = BookingService()
    _load_for_party(service, booking_id)

    user_id, role = get_current_identity()
    booking = service.cancel_booking(booking_id, data.get('reason'))
    log_booking_action(user_id, role, BOOKING_CANCELLED, booking_id, {
        'reason': booking.cancellation_reason,
    })
    return jsonify({'success': True, 'data': booking.to_dict()}), 200


@booking_bp.route('/<booking_id>/reschedule', methods=['PUT'])
@jwt_required()
def reschedule_booking(booking_id):
    """
    Move a confirmed or missed booking to a new slot.
    Body: new_date, new_time_slot_start, new_time_slot_end
    """
    data = request.get_json(silent=True) or {}
    for field in ('new_date', 'new_time_slot_start', 'new_time_slot_end'):
        if not data.get(field):
            raise ValidationError(f'Field "{field}" is required')

    service = BookingService()
    _load_for_party(service, booking_id)

    user_id, role = get_current_identity()
    successor = service.reschedule_booking(
        booking_id,
        data['new_date'],
        data['new_time_slot_start'],
        data['new_time_slot_end'],
        initiator_role=role,
    )
    log_booking_action(user_id, role, BOOKING_RESCHEDULED, booking_id, {
        'new_booking_id': successor.id,
        'new_date': successor.scheduled_date.isoformat(),
        'new_time_slot_start': successor.time_slot_start,
    })
    return jsonify({'success': True, 'data': successor.to_dict()}), 200


@booking_bp.route('/<booking_id>/logs', methods=['GET'])
@jwt_required()
def booking_logs(booking_id):
    _load_for_party(BookingService(), booking_id)
    logs = get_booking_action_logs(booking_id)
    return jsonify({'success': True, 'data': [entry.to_dict() for entry in logs]}), 200
