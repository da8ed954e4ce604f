from vetcare.extensions import db
from .base import TimestampMixin, generate_uuid, iso, record_now

SESSION_STATUSES = ('waiting', 'active', 'ended')
MESSAGE_TYPES = ('text', 'image', 'file', 'system')


class VideoSession(db.Model, TimestampMixin):
    __tablename__ = 'video_sessions'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    consultation_id = db.Column(db.String(36), db.ForeignKey('consultations.id'), nullable=True, index=True)
    room_id = db.Column(db.String(40), unique=True, nullable=False, index=True)
    host_user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    participant_user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)

    # Status: waiting, active, ended
    status = db.Column(db.String(20), nullable=False, default='waiting')
    started_at = db.Column(db.DateTime, nullable=True)
    ended_at = db.Column(db.DateTime, nullable=True)
    duration = db.Column(db.Integer, nullable=True)  # seconds
    recording_url = db.Column(db.String(500), nullable=True)
    quality = db.Column(db.String(10), nullable=False, default='high')

    def to_dict(self):
        return {
            'id': self.id,
            'consultation_id': self.consultation_id,
            'room_id': self.room_id,
            'host_user_id': self.host_user_id,
            'participant_user_id': self.participant_user_id,
            'status': self.status,
            'started_at': iso(self.started_at),
            'ended_at': iso(self.ended_at),
            'duration': self.duration,
            'recording_url': self.recording_url,
            'quality': self.quality,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<VideoSession {self.room_id} [{self.status}]>"


class ChatMessage(db.Model):
    __tablename__ = 'chat_messages'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    session_id = db.Column(db.String(36), db.ForeignKey('video_sessions.id'), nullable=False, index=True)
    sender_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    sender_name = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(10), nullable=False, default='text')
    timestamp = db.Column(db.DateTime, default=record_now, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'sender_id': self.sender_id,
            'sender_name': self.sender_name,
            'message': self.message,
            'message_type': self.message_type,
            'timestamp': iso(self.timestamp),
        }
