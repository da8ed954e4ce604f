from vetcare.extensions import db
from .base import TimestampMixin, generate_uuid, iso

BOOKING_STATUSES = ('pending', 'confirmed', 'missed', 'rescheduled', 'cancelled')
BOOKING_TYPES = ('video_call', 'in_person', 'phone', 'chat')
PRIORITIES = ('normal', 'urgent', 'emergency')

# Statuses that no longer hold their slot
SLOT_FREEING_STATUSES = ('cancelled', 'rescheduled')

_ACTIVE_SLOT_WHERE = db.text("status NOT IN ('cancelled', 'rescheduled')")


class Booking(db.Model, TimestampMixin):
    __tablename__ = 'bookings'
    __table_args__ = (
        # Slot exclusivity: one live booking per vet/date/start
        db.Index(
            'uq_bookings_active_slot',
            'veterinarian_id', 'scheduled_date', 'time_slot_start',
            unique=True,
            postgresql_where=_ACTIVE_SLOT_WHERE,
            sqlite_where=_ACTIVE_SLOT_WHERE,
        ),
        db.Index('ix_bookings_status_date', 'status', 'scheduled_date'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    pet_owner_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    veterinarian_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    animal_id = db.Column(db.String(36), nullable=True)
    enterprise_id = db.Column(db.String(36), nullable=True)
    group_id = db.Column(db.String(36), nullable=True)

    scheduled_date = db.Column(db.Date, nullable=False)
    time_slot_start = db.Column(db.String(5), nullable=False)  # HH:MM local
    time_slot_end = db.Column(db.String(5), nullable=False)

    # Status: pending, confirmed, missed, rescheduled, cancelled
    status = db.Column(db.String(20), nullable=False, default='pending')
    booking_type = db.Column(db.String(20), nullable=False, default='video_call')
    priority = db.Column(db.String(20), nullable=False, default='normal')
    reason_for_visit = db.Column(db.Text)
    symptoms = db.Column(db.Text)
    notes = db.Column(db.Text)
    cancellation_reason = db.Column(db.Text)
    confirmed_at = db.Column(db.DateTime, nullable=True)

    # Set on the successor booking created by a reschedule
    rescheduled_from = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=True, index=True)
    consultation_id = db.Column(db.String(36), db.ForeignKey('consultations.id'), nullable=True, index=True)

    pet_owner = db.relationship('User', foreign_keys=[pet_owner_id], lazy=True)
    veterinarian = db.relationship('User', foreign_keys=[veterinarian_id], lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'pet_owner_id': self.pet_owner_id,
            'veterinarian_id': self.veterinarian_id,
            'animal_id': self.animal_id,
            'enterprise_id': self.enterprise_id,
            'group_id': self.group_id,
            'consultation_id': self.consultation_id,
            'scheduled_date': iso(self.scheduled_date),
            'time_slot_start': self.time_slot_start,
            'time_slot_end': self.time_slot_end,
            'status': self.status,
            'booking_type': self.booking_type,
            'priority': self.priority,
            'reason_for_visit': self.reason_for_visit,
            'symptoms': self.symptoms,
            'notes': self.notes,
            'cancellation_reason': self.cancellation_reason,
            'confirmed_at': iso(self.confirmed_at),
            'rescheduled_from': self.rescheduled_from,
            'pet_owner_name': f"{self.pet_owner.first_name} {self.pet_owner.last_name}" if self.pet_owner else None,
            'vet_name': self.veterinarian.display_name if self.veterinarian else None,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Booking {self.id} vet={self.veterinarian_id} {self.scheduled_date} {self.time_slot_start} [{self.status}]>"
