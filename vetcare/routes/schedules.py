from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vetcare.errors import ValidationError
from vetcare.services import AvailabilityService, ScheduleService
from vetcare.utils.decorators import get_current_identity, require_role

schedule_bp = Blueprint('schedule', __name__, url_prefix='/api/schedules')


def _target_vet_id(data=None):
    """Vets manage their own rules; an admin names the vet explicitly"""
    user_id, role = get_current_identity()
    if role != 'admin':
        return user_id
    vet_id = (data or {}).get('veterinarian_id') or request.args.get('veterinarian_id')
    if not vet_id:
        raise ValidationError('veterinarian_id is required when acting as admin')
    return vet_id


@schedule_bp.route('', methods=['POST'])
@jwt_required()
@require_role('veterinarian', 'admin')
def create_schedule():
    """
    Create a weekly schedule rule.
    Body: day_of_week, start_time, end_time, slot_duration?, max_appointments?
    """
    data = request.get_json(silent=True) or {}
    for field in ('day_of_week', 'start_time', 'end_time'):
        if not data.get(field):
            raise ValidationError(f'Field "{field}" is required')

    rule = ScheduleService().create_rule(
        _target_vet_id(data),
        data['day_of_week'],
        data['start_time'],
        data['end_time'],
        slot_duration=data.get('slot_duration'),
        max_appointments=data.get('max_appointments'),
    )
    return jsonify({'success': True, 'data': rule.to_dict()}), 201


@schedule_bp.route('', methods=['GET'])
@jwt_required()
@require_role('veterinarian', 'admin')
def list_my_schedules():
    rules = ScheduleService().get_rules(_target_vet_id())
    return jsonify({'success': True, 'data': [r.to_dict() for r in rules]}), 200


@schedule_bp.route('/vet/<vet_id>', methods=['GET'])
@jwt_required()
def list_vet_schedules(vet_id):
    rules = ScheduleService().get_rules(vet_id)
    return jsonify({'success': True, 'data': [r.to_dict() for r in rules]}), 200


@schedule_bp.route('/<rule_id>', methods=['PUT'])
@jwt_required()
@require_role('veterinarian', 'admin')
def update_schedule(rule_id):
    data = request.get_json(silent=True) or {}
    rule = ScheduleService().update_rule(rule_id, _target_vet_id(data), data)
    return jsonify({'success': True, 'data': rule.to_dict()}), 200


@schedule_bp.route('/<rule_id>', methods=['DELETE'])
@jwt_required()
@require_role('veterinarian', 'admin')
def delete_schedule(rule_id):
    ScheduleService().delete_rule(rule_id, _target_vet_id())
    return jsonify({'success': True, 'message': 'Schedule deleted'}), 200


@schedule_bp.route('/availability/<vet_id>/<date>', methods=['GET'])
@jwt_required()
def get_availability(vet_id, date):
    """Bookable slots for a vet on a calendar date (YYYY-MM-DD)"""
    availability = AvailabilityService().compute_availability(vet_id, date)
    return jsonify({'success': True, 'data': availability}), 200
