"""
Booking Service
Booking lifecycle: pending -> confirmed -> {missed, cancelled}, with
reschedule producing a new booking linked to the one it replaces.

All transitions are conditional UPDATEs on the current status, so two
requests racing on the same booking cannot both apply.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import IntegrityError

from vetcare.errors import ConflictError, NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import Booking, User
from vetcare.models.booking import BOOKING_TYPES, PRIORITIES, SLOT_FREEING_STATUSES
from vetcare.utils.localtime import (
    Clock,
    combine,
    format_minutes,
    local_now,
    minutes_of_day,
    normalize_time,
    parse_date,
    parse_time,
)

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ('pending', 'confirmed')
RESCHEDULABLE_STATUSES = ('confirmed', 'missed')

# Fields carried over from a booking to its rescheduled successor
CARRIED_FIELDS = (
    'pet_owner_id', 'veterinarian_id', 'animal_id', 'enterprise_id', 'group_id',
    'booking_type', 'priority', 'reason_for_visit', 'symptoms', 'notes',
)


def _require(data: Dict[str, Any], fields: Iterable[str]) -> None:
    for field in fields:
        if not data.get(field):
            raise ValidationError(f'Field "{field}" is required')


def _validate_window(start: str, end: str) -> None:
    if parse_time(start) >= parse_time(end, end_of_day=True):
        raise ValidationError('time_slot_start must be before time_slot_end')


class BookingService:
    def __init__(self, session=None, clock: Optional[Clock] = None):
        self.session = session or db.session
        self.clock = clock or local_now

    # ------------------------------------------------------------------ reads

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError('Booking', booking_id)
        return booking

    def list_bookings(
        self,
        user_id: str,
        role: str,
        limit: int = 10,
        offset: int = 0,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        # Refresh overdue statuses first; a stale status beats a failed read
        try:
            self.mark_missed_bookings()
        except Exception as e:
            logger.warning("Missed-booking sweep failed before listing: %s", e)
            self.session.rollback()

        query = self.session.query(Booking)
        if role == 'admin':
            pass
        elif role == 'veterinarian':
            query = query.filter(Booking.veterinarian_id == user_id)
        else:
            # pet owners, farmers and anything unrecognised only see their own
            query = query.filter(Booking.pet_owner_id == user_id)

        if status:
            query = query.filter(Booking.status == status)

        total = query.count()
        items = query.order_by(
            Booking.scheduled_date.desc(),
            Booking.time_slot_start.asc(),
        ).limit(limit).offset(offset).all()

        return {
            'items': items,
            'total': total,
            'limit': limit,
            'offset': offset,
            'has_more': offset + len(items) < total,
        }

    # ------------------------------------------------------------ transitions

    def create_booking(self, pet_owner_id: str, data: Dict[str, Any]) -> Booking:
        _require(data, ('veterinarian_id', 'scheduled_date', 'time_slot_start', 'time_slot_end'))

        scheduled_date = parse_date(data['scheduled_date'])
        start = normalize_time(data['time_slot_start'])
        end = normalize_time(data['time_slot_end'], end_of_day=True)
        _validate_window(start, end)

        booking_type = data.get('booking_type') or 'video_call'
        if booking_type not in BOOKING_TYPES:
            raise ValidationError(f'Invalid booking_type. Must be one of: {", ".join(BOOKING_TYPES)}')
        priority = data.get('priority') or 'normal'
        if priority not in PRIORITIES:
            raise ValidationError(f'Invalid priority. Must be one of: {", ".join(PRIORITIES)}')

        if combine(scheduled_date, start) <= self.clock():
            raise ValidationError('Cannot book a consultation in the past. Please select a future date and time.')

        vet = self.session.get(User, data['veterinarian_id'])
        if not vet or not vet.is_veterinarian():
            raise NotFoundError('Veterinarian', data['veterinarian_id'])

        self._ensure_slot_free(vet.id, scheduled_date, start)

        booking = Booking(
            pet_owner_id=pet_owner_id,
            veterinarian_id=vet.id,
            animal_id=data.get('animal_id'),
            enterprise_id=data.get('enterprise_id'),
            group_id=data.get('group_id'),
            scheduled_date=scheduled_date,
            time_slot_start=start,
            time_slot_end=end,
            status='pending',
            booking_type=booking_type,
            priority=priority,
            reason_for_visit=data.get('reason_for_visit'),
            symptoms=data.get('symptoms'),
            notes=data.get('notes'),
        )
        self.session.add(booking)
        self._commit_claiming_slot()

        logger.info("Booking created: %s (owner=%s, vet=%s, %s %s)",
                    booking.id, pet_owner_id, vet.id, scheduled_date.isoformat(), start)
        return booking

    def confirm_booking(self, booking_id: str) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.status != 'pending':
            raise ValidationError(f"Cannot confirm a booking with status '{booking.status}'. Only pending bookings can be confirmed.")

        now = self.clock()
        if combine(booking.scheduled_date, booking.time_slot_end) <= now:
            raise ValidationError('Cannot confirm a booking whose scheduled time has already passed.')

        self._transition(booking_id, ('pending',), 'confirmed', confirmed_at=now)
        logger.info("Booking confirmed: %s", booking_id)
        return self.get_booking(booking_id)

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id)
        if booking.status not in CANCELLABLE_STATUSES:
            raise ValidationError(f"Cannot cancel a booking with status '{booking.status}'.")

        self._transition(
            booking_id,
            CANCELLABLE_STATUSES,
            'cancelled',
            cancellation_reason=reason or 'No reason provided',
        )
        logger.info("Booking cancelled: %s", booking_id)
        return self.get_booking(booking_id)

    def reschedule_booking(
        self,
        booking_id: str,
        new_date,
        new_start: str,
        new_end: str,
        initiator_role: Optional[str] = None,
    ) -> Booking:
        """
        Replace a confirmed or missed booking with a new one at another slot.

        The old booking ends as 'rescheduled'; the new one references it via
        rescheduled_from. Vet-initiated reschedules are confirmed straight away,
        anyone else's wait for the vet in 'pending'. Both rows change in one
        transaction.
        """
        scheduled_date = parse_date(new_date)
        start = normalize_time(new_start)
        end = normalize_time(new_end, end_of_day=True)
        _validate_window(start, end)

        now = self.clock()
        if combine(scheduled_date, start) <= now:
            raise ValidationError('Cannot reschedule to a past date/time. Please select a future time.')

        old = self.get_booking(booking_id)
        if old.status not in RESCHEDULABLE_STATUSES:
            raise ValidationError(
                f"Cannot reschedule a booking with status '{old.status}'. "
                "Only missed or confirmed bookings can be rescheduled."
            )

        self._ensure_slot_free(old.veterinarian_id, scheduled_date, start, exclude_id=old.id)

        auto_confirm = initiator_role == 'veterinarian'
        carried = {field: getattr(old, field) for field in CARRIED_FIELDS}

        try:
            claimed = self.session.query(Booking).filter(
                Booking.id == booking_id,
                Booking.status.in_(RESCHEDULABLE_STATUSES),
            ).update({'status': 'rescheduled'}, synchronize_session=False)
            if claimed == 0:
                raise ValidationError('Booking was modified concurrently; it can no longer be rescheduled.')

            successor = Booking(
                scheduled_date=scheduled_date,
                time_slot_start=start,
                time_slot_end=end,
                status='confirmed' if auto_confirm else 'pending',
                confirmed_at=now if auto_confirm else None,
                rescheduled_from=booking_id,
                **carried,
            )
            self.session.add(successor)
        except Exception:
            self.session.rollback()
            raise
        self._commit_claiming_slot()

        logger.info("Booking rescheduled: %s -> %s (status=%s, initiator=%s)",
                    booking_id, successor.id, successor.status, initiator_role)
        return successor

    def mark_missed_bookings(self) -> int:
        """
        Move confirmed bookings with no consultation whose window has closed
        to 'missed'. A single conditional UPDATE, so repeated or concurrent
        sweeps never transition a row twice.
        """
        now = self.clock()
        today = now.date()
        current_time = format_minutes(minutes_of_day(now))

        try:
            count = self.session.query(Booking).filter(
                Booking.status == 'confirmed',
                Booking.consultation_id.is_(None),
                db.or_(
                    Booking.scheduled_date < today,
                    db.and_(Booking.scheduled_date == today, Booking.time_slot_end <= current_time),
                ),
            ).update({'status': 'missed'}, synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        if count:
            logger.info("Auto-marked %d booking(s) as missed", count)
        return count

    # ---------------------------------------------------------------- helpers

    def _ensure_slot_free(self, veterinarian_id: str, scheduled_date, start: str, exclude_id: Optional[str] = None) -> None:
        query = self.session.query(Booking.id).filter(
            Booking.veterinarian_id == veterinarian_id,
            Booking.scheduled_date == scheduled_date,
            Booking.time_slot_start == start,
            Booking.status.notin_(SLOT_FREEING_STATUSES),
        )
        if exclude_id:
            query = query.filter(Booking.id != exclude_id)
        if query.first():
            raise ConflictError('This time slot is already booked')

    def _commit_claiming_slot(self) -> None:
        """Commit, mapping a slot unique-index violation to ConflictError"""
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.info("Slot claim lost to a concurrent booking: %s", e.orig)
            raise ConflictError('This time slot is already booked')

    def _transition(self, booking_id: str, from_statuses, to_status: str, **values) -> None:
        values['status'] = to_status
        try:
            updated = self.session.query(Booking).filter(
                Booking.id == booking_id,
                Booking.status.in_(from_statuses),
            ).update(values, synchronize_session=False)
            if updated == 0:
                raise ValidationError(f"Booking {booking_id} changed status concurrently; transition to '{to_status}' not applied.")
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise