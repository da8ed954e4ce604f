"""
Audit/action logging. Writes are best-effort: a failed log entry is reported
and rolled back, never raised into the request that triggered it.
"""
import json
import logging
from typing import Any, List, Optional

from vetcare.extensions import db
from vetcare.models import AuditLog, Booking

logger = logging.getLogger(__name__)

BOOKING_CREATED = 'BOOKING_CREATED'
BOOKING_CONFIRMED = 'BOOKING_CONFIRMED'
BOOKING_CANCELLED = 'BOOKING_CANCELLED'
BOOKING_RESCHEDULED = 'BOOKING_RESCHEDULED'


def log_audit(
    entity_type: str,
    action: str,
    user_id: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[dict] = None,
    user_role: Optional[str] = None,
) -> None:
    """Append an audit log entry."""
    try:
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            action=action,
            user_id=user_id,
            user_role=user_role,
            details=json.dumps(details, default=str) if details else None,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        logger.warning("Audit log failed: %s (action=%s, entity=%s)", e, action, entity_id)
        db.session.rollback()


def log_booking_action(user_id: str, user_role: str, action: str, booking_id: str, details: Optional[dict] = None) -> None:
    """Booking transitions are always logged, with the actor's role folded into details"""
    payload = dict(details or {})
    payload['role'] = user_role
    log_audit('booking', action, user_id=user_id, entity_id=booking_id, details=payload, user_role=user_role)


def get_booking_action_logs(booking_id: str) -> List[AuditLog]:
    return AuditLog.query.filter(
        AuditLog.entity_type == 'booking',
        AuditLog.entity_id == booking_id,
    ).order_by(AuditLog.created_at.asc()).all()


def get_user_action_logs(user_id: str, limit: int = 50, offset: int = 0) -> List[Any]:
    """Booking logs for every booking the user owns or is assigned to"""
    own_bookings = db.select(Booking.id).where(
        db.or_(Booking.pet_owner_id == user_id, Booking.veterinarian_id == user_id)
    )
    return AuditLog.query.filter(
        AuditLog.entity_type == 'booking',
        AuditLog.entity_id.in_(own_bookings),
    ).order_by(AuditLog.created_at.desc()).limit(limit).offset(offset).all()
