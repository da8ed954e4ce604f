"""
Schedule Service
Veterinarian weekly availability templates (one rule per weekday)
"""
import logging
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from vetcare.errors import ConflictError, NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import ScheduleRule
from vetcare.utils.localtime import DAYS_OF_WEEK, normalize_time, parse_time

logger = logging.getLogger(__name__)

MIN_SLOT_DURATION = 5
MAX_SLOT_DURATION = 240

PATCHABLE_FIELDS = ('start_time', 'end_time', 'slot_duration', 'max_appointments', 'is_active')


def _setting(name: str, fallback: int) -> int:
    if has_app_context():
        return current_app.config.get(name, fallback)
    return fallback


def _validate_day(day: str) -> str:
    day_name = (day or '').strip().lower() if isinstance(day, str) else ''
    if day_name not in DAYS_OF_WEEK:
        raise ValidationError(f'Invalid day_of_week. Must be one of: {", ".join(DAYS_OF_WEEK)}')
    return day_name


def _validate_window(start_time: str, end_time: str, slot_duration: int) -> None:
    if parse_time(start_time) >= parse_time(end_time):
        raise ValidationError('start_time must be before end_time')
    if not isinstance(slot_duration, int) or isinstance(slot_duration, bool) \
            or not MIN_SLOT_DURATION <= slot_duration <= MAX_SLOT_DURATION:
        raise ValidationError(f'slot_duration must be between {MIN_SLOT_DURATION} and {MAX_SLOT_DURATION} minutes')


class ScheduleService:
    def __init__(self, session=None):
        self.session = session or db.session

    def create_rule(
        self,
        veterinarian_id: str,
        day_of_week: str,
        start_time: str,
        end_time: str,
        slot_duration: Optional[int] = None,
        max_appointments: Optional[int] = None,
    ) -> ScheduleRule:
        day_name = _validate_day(day_of_week)
        start_time = normalize_time(start_time)
        end_time = normalize_time(end_time)
        slot_duration = slot_duration or _setting('DEFAULT_SLOT_DURATION', 30)
        max_appointments = max_appointments or _setting('DEFAULT_MAX_APPOINTMENTS', 10)
        _validate_window(start_time, end_time, slot_duration)

        existing = self.session.query(ScheduleRule.id).filter_by(
            veterinarian_id=veterinarian_id,
            day_of_week=day_name,
        ).first()
        if existing:
            raise ConflictError(f'Schedule already exists for {day_name}')

        rule = ScheduleRule(
            veterinarian_id=veterinarian_id,
            day_of_week=day_name,
            start_time=start_time,
            end_time=end_time,
            slot_duration=slot_duration,
            max_appointments=max_appointments,
            is_active=True,
        )
        try:
            self.session.add(rule)
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create for the same weekday
            self.session.rollback()
            raise ConflictError(f'Schedule already exists for {day_name}')

        logger.info("Vet schedule created: %s (vet=%s, day=%s)", rule.id, veterinarian_id, day_name)
        return rule

    def get_rules(self, veterinarian_id: str) -> List[ScheduleRule]:
        """Rules for a vet ordered Monday -> Sunday"""
        rules = self.session.query(ScheduleRule).filter_by(veterinarian_id=veterinarian_id).all()
        return sorted(rules, key=lambda r: DAYS_OF_WEEK.index(r.day_of_week))

    def get_active_rule(self, veterinarian_id: str, day_name: str) -> Optional[ScheduleRule]:
        return self.session.query(ScheduleRule).filter_by(
            veterinarian_id=veterinarian_id,
            day_of_week=day_name,
            is_active=True,
        ).first()

    def update_rule(self, rule_id: str, veterinarian_id: str, patch: Dict[str, Any]) -> ScheduleRule:
        rule = self.session.query(ScheduleRule).filter_by(id=rule_id, veterinarian_id=veterinarian_id).first()
        if not rule:
            raise NotFoundError('Schedule', rule_id)

        changes = {}
        for field in PATCHABLE_FIELDS:
            if field not in patch or patch[field] is None:
                continue
            value = patch[field]
            if field in ('start_time', 'end_time'):
                value = normalize_time(value)
            elif field == 'is_active':
                value = bool(value)
            elif field == 'max_appointments':
                if not isinstance(value, int) or value < 1:
                    raise ValidationError('max_appointments must be a positive integer')
            changes[field] = value

        _validate_window(
            changes.get('start_time', rule.start_time),
            changes.get('end_time', rule.end_time),
            changes.get('slot_duration', rule.slot_duration),
        )

        for field, value in changes.items():
            setattr(rule, field, value)
        self.session.commit()
        logger.info("Vet schedule updated: %s", rule_id)
        return rule

    def delete_rule(self, rule_id: str, veterinarian_id: str) -> None:
        deleted = self.session.query(ScheduleRule).filter_by(
            id=rule_id,
            veterinarian_id=veterinarian_id,
        ).delete(synchronize_session=False)
        if deleted == 0:
            self.session.rollback()
            raise NotFoundError('Schedule', rule_id)
        self.session.commit()
        logger.info("Vet schedule deleted: %s", rule_id)
