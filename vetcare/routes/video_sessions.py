from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vetcare.errors import ForbiddenError, NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import Consultation
from vetcare.services import VideoSessionService
from vetcare.utils.decorators import get_current_identity, get_current_user, require_role

video_session_bp = Blueprint('video_session', __name__, url_prefix='/api/video-sessions')


def _ensure_access(video_session):
    """Host, participant, either consultation party, or an admin"""
    user_id, role = get_current_identity()
    if role == 'admin' or user_id in (video_session.host_user_id, video_session.participant_user_id):
        return
    consultation = db.session.get(Consultation, video_session.consultation_id) if video_session.consultation_id else None
    if consultation and user_id in (consultation.user_id, consultation.veterinarian_id):
        return
    raise ForbiddenError('You do not have access to this video session')


@video_session_bp.route('', methods=['POST'])
@jwt_required()
def create_session():
    """
    Open a room for a consultation; a live room for it is returned as-is.
    Body: consultation_id, participant_user_id
    """
    data = request.get_json(silent=True) or {}
    user_id, role = get_current_identity()

    consultation = db.session.get(Consultation, data.get('consultation_id')) if data.get('consultation_id') else None
    if consultation and role != 'admin' and user_id not in (consultation.user_id, consultation.veterinarian_id):
        raise ForbiddenError('You are not a party to this consultation')

    video_session, created = VideoSessionService().create_session(
        user_id,
        data.get('consultation_id'),
        data.get('participant_user_id'),
    )
    return jsonify({'success': True, 'data': video_session.to_dict()}), 201 if created else 200


@video_session_bp.route('/active', methods=['GET'])
@jwt_required()
@require_role('admin')
def list_active_sessions():
    sessions = VideoSessionService().list_active_sessions()
    return jsonify({'success': True, 'data': [s.to_dict() for s in sessions]}), 200


@video_session_bp.route('/consultation/<consultation_id>', methods=['GET'])
@jwt_required()
def get_session_by_consultation(consultation_id):
    video_session = VideoSessionService().get_session_by_consultation(consultation_id)
    if not video_session:
        raise NotFoundError('Video Session for consultation', consultation_id)
    _ensure_access(video_session)
    return jsonify({'success': True, 'data': video_session.to_dict()}), 200


@video_session_bp.route('/join/<room_id>', methods=['POST'])
@jwt_required()
def join_session(room_id):
    service = VideoSessionService()
    video_session = service.get_session_by_room(room_id)
    if not video_session:
        raise NotFoundError('Video Session for room', room_id)
    _ensure_access(video_session)

    video_session = service.join_session(room_id)
    return jsonify({'success': True, 'data': video_session.to_dict()}), 200


@video_session_bp.route('/<session_id>', methods=['GET'])
@jwt_required()
def get_session(session_id):
    video_session = VideoSessionService().get_session(session_id)
    _ensure_access(video_session)
    return jsonify({'success': True, 'data': video_session.to_dict()}), 200


@video_session_bp.route('/<session_id>/start', methods=['PUT'])
@jwt_required()
def start_session(session_id):
    service = VideoSessionService()
    _ensure_access(service.get_session(session_id))
    video_session = service.start_session(session_id)
    return jsonify({'success': True, 'data': video_session.to_dict()}), 200


@video_session_bp.route('/<session_id>/end', methods=['PUT'])
@jwt_required()
def end_session(session_id):
    """Body: recording_url?"""
    data = request.get_json(silent=True) or {}
    recording_url = data.get('recording_url')
    if recording_url not in (None, '') and (not isinstance(recording_url, str)
                                            or not recording_url.startswith(('http://', 'https://'))):
        raise ValidationError('recording_url must be an http(s) URL')

    service = VideoSessionService()
    _ensure_access(service.get_session(session_id))
    video_session = service.end_session(session_id, recording_url)
    return jsonify({'success': True, 'data': video_session.to_dict()}), 200


@video_session_bp.route('/<session_id>/messages', methods=['POST'])
@jwt_required()
def add_message(session_id):
    """Body: message, message_type?"""
    data = request.get_json(silent=True) or {}
    service = VideoSessionService()
    _ensure_access(service.get_session(session_id))

    sender = get_current_user()
    chat_message = service.add_chat_message(
        session_id,
        sender.id,
        sender.display_name,
        data.get('message'),
        data.get('message_type') or 'text',
    )
    return jsonify({'success': True, 'data': chat_message.to_dict()}), 201


@video_session_bp.route('/<session_id>/messages', methods=['GET'])
@jwt_required()
def get_messages(session_id):
    service = VideoSessionService()
    _ensure_access(service.get_session(session_id))
    messages = service.get_chat_messages(session_id)
    return jsonify({'success': True, 'data': [m.to_dict() for m in messages]}), 200
