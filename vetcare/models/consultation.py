from vetcare.extensions import db
from .base import TimestampMixin, generate_uuid, iso

CONSULTATION_STATUSES = ('scheduled', 'in_progress', 'completed', 'cancelled')


class Consultation(db.Model, TimestampMixin):
    __tablename__ = 'consultations'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)  # pet owner
    veterinarian_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    # Plain column: bookings.consultation_id carries the foreign key
    booking_id = db.Column(db.String(36), nullable=True, index=True)
    animal_id = db.Column(db.String(36), nullable=True)
    animal_type = db.Column(db.String(50))
    symptom_description = db.Column(db.Text)

    # Status: scheduled, in_progress, completed, cancelled
    status = db.Column(db.String(20), nullable=False, default='scheduled')
    scheduled_at = db.Column(db.DateTime, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    diagnosis = db.Column(db.Text)
    prescription = db.Column(db.Text)
    notes = db.Column(db.Text)
    duration = db.Column(db.Integer, nullable=True)  # minutes

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'veterinarian_id': self.veterinarian_id,
            'booking_id': self.booking_id,
            'animal_id': self.animal_id,
            'animal_type': self.animal_type,
            'symptom_description': self.symptom_description,
            'status': self.status,
            'scheduled_at': iso(self.scheduled_at),
            'started_at': iso(self.started_at),
            'completed_at': iso(self.completed_at),
            'diagnosis': self.diagnosis,
            'prescription': self.prescription,
            'notes': self.notes,
            'duration': self.duration,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Consultation {self.id} [{self.status}]>"
