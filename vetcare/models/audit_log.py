"""
Append-only action log for booking transitions and other traceable changes.
"""
import json

from vetcare.extensions import db
from .base import generate_uuid, iso, record_now


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    entity_type = db.Column(db.String(64), nullable=False, index=True)  # booking, schedule, consultation, ...
    entity_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)  # BOOKING_CREATED, BOOKING_CONFIRMED, ...
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)
    user_role = db.Column(db.String(20), nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON
    created_at = db.Column(db.DateTime, default=record_now, nullable=False)

    user = db.relationship('User', lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "user_id": self.user_id,
            "user_role": self.user_role,
            "user_name": f"{self.user.first_name} {self.user.last_name}" if self.user else None,
            "details": json.loads(self.details) if self.details else None,
            "created_at": iso(self.created_at),
        }
