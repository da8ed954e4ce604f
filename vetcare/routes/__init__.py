from .auth import auth_bp
from .health import health_bp
from .schedules import schedule_bp
from .bookings import booking_bp
from .consultations import consultation_bp
from .video_sessions import video_session_bp

__all__ = ['auth_bp', 'health_bp', 'schedule_bp', 'booking_bp', 'consultation_bp', 'video_session_bp']
