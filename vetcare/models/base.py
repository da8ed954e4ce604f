import uuid
from vetcare.extensions import db
from vetcare.utils.localtime import local_now


def generate_uuid():
    return str(uuid.uuid4())


def record_now():
    """Row stamps share the local wall clock with scheduled_date and started_at"""
    return local_now()


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=record_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=record_now, onupdate=record_now, nullable=False)


def iso(value):
    """isoformat() that tolerates None"""
    return value.isoformat() if value else None
