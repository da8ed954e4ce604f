"""
Availability Service
Derives bookable time slots for a vet on a date from the weekly schedule
and the bookings already holding slots on that date.
"""
import logging
from typing import Any, Dict, List, Optional

from vetcare.extensions import db
from vetcare.models import Booking
from vetcare.models.booking import SLOT_FREEING_STATUSES
from vetcare.services.schedule_service import ScheduleService
from vetcare.utils.localtime import (
    MINUTES_PER_DAY,
    Clock,
    day_of_week,
    format_minutes,
    local_now,
    minutes_of_day,
    parse_date,
    parse_time,
)

logger = logging.getLogger(__name__)


def generate_slots(start_time: str, end_time: str, slot_duration: int) -> List[Dict[str, Any]]:
    """Enumerate [start, start+duration) windows while the start is before end_time and the window ends by midnight"""
    slots = []
    current = parse_time(start_time)
    end = parse_time(end_time)
    while current < end:
        if current + slot_duration > MINUTES_PER_DAY:
            # would spill into the next calendar day
            break
        slots.append({
            'start_minutes': current,
            'start_time': format_minutes(current),
            'end_time': format_minutes(current + slot_duration),
        })
        current += slot_duration
    return slots


class AvailabilityService:
    def __init__(self, session=None, clock: Optional[Clock] = None, schedules: Optional[ScheduleService] = None):
        self.session = session or db.session
        self.clock = clock or local_now
        self.schedules = schedules or ScheduleService(self.session)

    def compute_availability(self, veterinarian_id: str, date) -> Dict[str, Any]:
        requested = parse_date(date)
        result = {'veterinarian_id': veterinarian_id, 'date': requested.isoformat(), 'slots': []}

        now = self.clock()
        today = now.date()
        # The past has no availability; this is not an error
        if requested < today:
            return result

        rule = self.schedules.get_active_rule(veterinarian_id, day_of_week(requested))
        if not rule:
            return result

        holders = self.session.query(Booking.id, Booking.time_slot_start).filter(
            Booking.veterinarian_id == veterinarian_id,
            Booking.scheduled_date == requested,
            Booking.status.notin_(SLOT_FREEING_STATUSES),
        ).all()
        booked = {row.time_slot_start: row.id for row in holders}

        is_today = requested == today
        current_minutes = minutes_of_day(now)

        slots = []
        for slot in generate_slots(rule.start_time, rule.end_time, rule.slot_duration):
            if is_today and slot['start_minutes'] <= current_minutes:
                continue
            booking_id = booked.get(slot['start_time'])
            entry = {
                'start_time': slot['start_time'],
                'end_time': slot['end_time'],
                'is_available': booking_id is None,
            }
            if booking_id:
                entry['booking_id'] = booking_id
            slots.append(entry)

        result['slots'] = slots
        return result
