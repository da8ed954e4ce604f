from vetcare.extensions import db
from .base import TimestampMixin, generate_uuid, iso


class ScheduleRule(db.Model, TimestampMixin):
    """Weekly availability template: one rule per veterinarian and weekday"""
    __tablename__ = 'schedule_rules'
    __table_args__ = (
        db.UniqueConstraint('veterinarian_id', 'day_of_week', name='uq_schedule_rules_vet_day'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    veterinarian_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    day_of_week = db.Column(db.String(10), nullable=False)  # monday..sunday
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM local
    end_time = db.Column(db.String(5), nullable=False)
    slot_duration = db.Column(db.Integer, nullable=False, default=30)  # minutes
    max_appointments = db.Column(db.Integer, nullable=False, default=10)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            'id': self.id,
            'veterinarian_id': self.veterinarian_id,
            'day_of_week': self.day_of_week,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'slot_duration': self.slot_duration,
            'max_appointments': self.max_appointments,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def __repr__(self):
        return f"<ScheduleRule {self.veterinarian_id} {self.day_of_week} {self.start_time}-{self.end_time}>"
