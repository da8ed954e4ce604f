"""
Consultation Service
"""
import logging
from typing import Any, Dict, Optional, Tuple

from vetcare.errors import NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import Booking, Consultation, User
from vetcare.models.consultation import CONSULTATION_STATUSES
from vetcare.utils.localtime import Clock, combine, local_now, parse_datetime

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('status', 'diagnosis', 'prescription', 'notes', 'duration', 'animal_id', 'started_at', 'completed_at')


class ConsultationService:
    def __init__(self, session=None, clock: Optional[Clock] = None):
        self.session = session or db.session
        self.clock = clock or local_now

    def get_consultation(self, consultation_id: str) -> Consultation:
        consultation = self.session.get(Consultation, consultation_id)
        if not consultation:
            raise NotFoundError('Consultation', consultation_id)
        return consultation

    def create_consultation(self, patient_id: str, veterinarian_id: str, data: Dict[str, Any]) -> Tuple[Consultation, bool]:
        """
        Create a consultation, optionally for a booking.

        Returns (consultation, created). A booking maps to at most one
        consultation: asking again for the same booking returns the existing
        one with created=False.
        """
        if not veterinarian_id:
            raise ValidationError('Field "veterinarian_id" is required')
        vet = self.session.get(User, veterinarian_id)
        if not vet or not vet.is_veterinarian():
            raise NotFoundError('Veterinarian', veterinarian_id)

        booking = None
        booking_id = data.get('booking_id')
        if booking_id:
            booking = self.session.get(Booking, booking_id)
            if not booking:
                raise NotFoundError('Booking', booking_id)

            existing = self._existing_for_booking(booking)
            if existing:
                logger.info("Returning existing consultation %s for booking %s", existing.id, booking_id)
                return existing, False

            if booking.status != 'confirmed':
                raise ValidationError(f"Cannot start a consultation for a booking with status '{booking.status}'.")
            if booking.veterinarian_id != veterinarian_id:
                raise ValidationError('Booking belongs to a different veterinarian')
            if booking.pet_owner_id != patient_id:
                raise ValidationError('Booking belongs to a different pet owner')

        if data.get('scheduled_at'):
            scheduled_at = parse_datetime(data['scheduled_at'])
        elif booking:
            scheduled_at = combine(booking.scheduled_date, booking.time_slot_start)
        else:
            scheduled_at = self.clock()

        consultation = Consultation(
            user_id=patient_id,
            veterinarian_id=veterinarian_id,
            booking_id=booking_id,
            animal_id=data.get('animal_id') or (booking.animal_id if booking else None),
            animal_type=data.get('animal_type'),
            symptom_description=data.get('symptom_description') or (booking.symptoms if booking else None),
            status='scheduled',
            scheduled_at=scheduled_at,
        )
        try:
            self.session.add(consultation)
            self.session.flush()
            if booking:
                # Linked in the same transaction; takes the booking out of the missed sweep
                booking.consultation_id = consultation.id
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("Consultation created: %s (patient=%s, vet=%s, booking=%s)",
                    consultation.id, patient_id, veterinarian_id, booking_id)
        return consultation, True

    def update_consultation(self, consultation_id: str, updates: Dict[str, Any]) -> Consultation:
        consultation = self.get_consultation(consultation_id)

        changes = {}
        for field in UPDATABLE_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field == 'status' and value not in CONSULTATION_STATUSES:
                raise ValidationError(f'Invalid status. Must be one of: {", ".join(CONSULTATION_STATUSES)}')
            if field == 'duration' and value is not None and (not isinstance(value, int) or value < 0):
                raise ValidationError('duration must be a non-negative integer (minutes)')
            if field in ('started_at', 'completed_at') and value is not None:
                value = parse_datetime(value)
            changes[field] = value

        if not changes:
            raise ValidationError('At least one field must be provided for update')

        for field, value in changes.items():
            setattr(consultation, field, value)
        self.session.commit()
        logger.info("Consultation updated: %s (%s)", consultation_id, ", ".join(sorted(changes)))
        return consultation

    def list_consultations(self, user_id: str, role: str, limit: int = 10, offset: int = 0,
                           status: Optional[str] = None):
        query = self.session.query(Consultation)
        if role == 'veterinarian':
            query = query.filter(Consultation.veterinarian_id == user_id)
        elif role != 'admin':
            query = query.filter(Consultation.user_id == user_id)
        if status:
            query = query.filter(Consultation.status == status)
        return query.order_by(Consultation.scheduled_at.desc()).limit(limit).offset(offset).all()

    def _existing_for_booking(self, booking: Booking) -> Optional[Consultation]:
        if booking.consultation_id:
            linked = self.session.get(Consultation, booking.consultation_id)
            if linked:
                return linked

        # A consultation that points at the booking without the back-link
        orphan = self.session.query(Consultation).filter_by(booking_id=booking.id).first()
        if orphan:
            booking.consultation_id = orphan.id
            self.session.commit()
        return orphan
