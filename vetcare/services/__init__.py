from .schedule_service import ScheduleService

from .availability_service import AvailabilityService, generate_slots

from .booking_service import BookingService

from .consultation_service import ConsultationService

# Importing the bridge connects its signal receivers
from .bridge import session_started, session_ended

from .video_session_service import VideoSessionService

__all__ = [
    # Scheduling
    "ScheduleService",
    "AvailabilityService",
    "generate_slots",
    # Bookings
    "BookingService",
    # Consultations and video sessions
    "ConsultationService",
    "VideoSessionService",
    "session_started",
    "session_ended",
]
