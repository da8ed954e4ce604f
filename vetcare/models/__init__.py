from .user import User
from .schedule_rule import ScheduleRule
from .consultation import Consultation
from .booking import Booking
from .video_session import VideoSession, ChatMessage
from .audit_log import AuditLog

__all__ = ["User", "ScheduleRule", "Consultation", "Booking", "VideoSession", "ChatMessage", "AuditLog"]
