"""
Video Session Service
Rooms for video consultations: waiting -> active -> ended.

start/end are idempotent. Each is a conditional UPDATE, and only the call
that actually performs the transition emits the bridge signal, so duplicate
or concurrent calls neither recompute the duration nor touch the
consultation twice.
"""
import logging
import secrets
from typing import List, Optional, Tuple

from vetcare.errors import NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import ChatMessage, Consultation, VideoSession
from vetcare.models.video_session import MESSAGE_TYPES
from vetcare.services.bridge import session_ended, session_started
from vetcare.utils.localtime import Clock, local_now

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


def generate_room_id() -> str:
    """Unguessable room token"""
    return f"room_{secrets.token_hex(6)}"


class VideoSessionService:
    def __init__(self, session=None, clock: Optional[Clock] = None):
        self.session = session or db.session
        self.clock = clock or local_now

    def create_session(self, host_user_id: str, consultation_id: str, participant_user_id: str) -> Tuple[VideoSession, bool]:
        """Returns (session, created); a live session for the consultation is reused"""
        if not consultation_id or not participant_user_id:
            raise ValidationError('consultation_id and participant_user_id are required')
        if not self.session.get(Consultation, consultation_id):
            raise NotFoundError('Consultation', consultation_id)

        existing = self.get_session_by_consultation(consultation_id)
        if existing and existing.status in ('active', 'waiting'):
            return existing, False

        video_session = VideoSession(
            consultation_id=consultation_id,
            room_id=generate_room_id(),
            host_user_id=host_user_id,
            participant_user_id=participant_user_id,
            status='waiting',
            quality='high',
        )
        try:
            self.session.add(video_session)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("Video session created: %s (room=%s, consultation=%s)",
                    video_session.id, video_session.room_id, consultation_id)
        return video_session, True

    def get_session(self, session_id: str) -> VideoSession:
        video_session = self.session.get(VideoSession, session_id)
        if not video_session:
            raise NotFoundError('Video Session', session_id)
        return video_session

    def get_session_by_consultation(self, consultation_id: str) -> Optional[VideoSession]:
        """Prefer active, then waiting, then the most recent ended session"""
        live_first = db.case(
            (VideoSession.status == 'active', 0),
            (VideoSession.status == 'waiting', 1),
            else_=2,
        )
        return self.session.query(VideoSession).filter(
            VideoSession.consultation_id == consultation_id,
        ).order_by(live_first, VideoSession.created_at.desc()).first()

    def get_session_by_room(self, room_id: str) -> Optional[VideoSession]:
        return self.session.query(VideoSession).filter_by(room_id=room_id).first()

    def join_session(self, room_id: str) -> VideoSession:
        """The first participant to arrive takes a waiting room live"""
        video_session = self.get_session_by_room(room_id)
        if not video_session:
            raise NotFoundError('Video Session for room', room_id)
        if video_session.status == 'waiting':
            return self.start_session(video_session.id)
        return video_session

    def start_session(self, session_id: str) -> VideoSession:
        video_session = self.get_session(session_id)
        if video_session.status == 'active':
            return video_session
        if video_session.status == 'ended':
            raise ValidationError('Cannot start a session that has already ended')

        now = self.clock()
        try:
            won = self.session.query(VideoSession).filter(
                VideoSession.id == session_id,
                VideoSession.status == 'waiting',
            ).update({'status': 'active', 'started_at': now}, synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        video_session = self.get_session(session_id)
        if won:
            logger.info("Video session started: %s", session_id)
            session_started.send(video_session, consultation_id=video_session.consultation_id,
                                 started_at=now, session=self.session)
        return video_session

    def end_session(self, session_id: str, recording_url: Optional[str] = None) -> VideoSession:
        video_session = self.get_session(session_id)
        if video_session.status == 'ended':
            return video_session

        now = self.clock()
        if video_session.started_at:
            duration = max(0, int(round((now - video_session.started_at).total_seconds())))
        else:
            duration = 0

        try:
            won = self.session.query(VideoSession).filter(
                VideoSession.id == session_id,
                VideoSession.status != 'ended',
            ).update({
                'status': 'ended',
                'ended_at': now,
                'duration': duration,
                'recording_url': recording_url or None,
            }, synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        video_session = self.get_session(session_id)
        if won:
            logger.info("Video session ended: %s (duration=%ss)", session_id, duration)
            session_ended.send(video_session, consultation_id=video_session.consultation_id,
                               ended_at=now, duration_seconds=duration, session=self.session)
        return video_session

    def add_chat_message(self, session_id: str, sender_id: str, sender_name: str,
                         message: str, message_type: str = 'text') -> ChatMessage:
        if not message or not message.strip():
            raise ValidationError('Message is required')
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f'Message must be at most {MAX_MESSAGE_LENGTH} characters')
        if message_type not in MESSAGE_TYPES:
            raise ValidationError(f'Invalid message_type. Must be one of: {", ".join(MESSAGE_TYPES)}')
        self.get_session(session_id)

        chat_message = ChatMessage(
            session_id=session_id,
            sender_id=sender_id,
            sender_name=sender_name,
            message=message,
            message_type=message_type,
        )
        self.session.add(chat_message)
        self.session.commit()
        return chat_message

    def get_chat_messages(self, session_id: str) -> List[ChatMessage]:
        return self.session.query(ChatMessage).filter_by(session_id=session_id).order_by(ChatMessage.timestamp.asc()).all()

    def list_active_sessions(self) -> List[VideoSession]:
        return self.session.query(VideoSession).filter(
            VideoSession.status.in_(('waiting', 'active')),
        ).order_by(VideoSession.created_at.desc()).all()
