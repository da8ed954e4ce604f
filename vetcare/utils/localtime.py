"""
Local calendar and wall-clock helpers.

Booking dates are calendar dates and slot times are "HH:MM" strings on the
server's local wall clock. Nothing here goes through UTC: comparing a
date-only value against a UTC timestamp shifts it across midnight on servers
that are not running in UTC.
"""
import re
from datetime import date, datetime, timedelta
from typing import Callable

from vetcare.errors import ValidationError

Clock = Callable[[], datetime]

DAYS_OF_WEEK = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::\d{2})?$')

MINUTES_PER_DAY = 24 * 60


def local_now() -> datetime:
    """Naive local wall-clock time"""
    return datetime.now()


def parse_date(value) -> date:
    """Parse a YYYY-MM-DD string (or pass through a date)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError('Invalid date format. Use YYYY-MM-DD')
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid date: {value}')


def parse_time(value: str, end_of_day: bool = False) -> int:
    """
    Parse HH:MM (seconds tolerated and dropped) into minutes of day.
    With end_of_day, "24:00" is accepted as the end of a slot running to midnight.
    """
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError('Invalid time format. Use HH:MM (e.g., 10:30)')
    hours, minutes = int(match.group(1)), int(match.group(2))
    if end_of_day and hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise ValidationError(f'Invalid time: {value}')
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    # 24:00 is a valid slot end
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def normalize_time(value: str, end_of_day: bool = False) -> str:
    return format_minutes(parse_time(value, end_of_day))


def day_of_week(day: date) -> str:
    return DAYS_OF_WEEK[day.weekday()]


def parse_datetime(value) -> datetime:
    """ISO-8601 timestamp; an offset-aware value is converted to naive local time"""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f'Invalid datetime: {value}')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def combine(day: date, time_str: str) -> datetime:
    """Local datetime for a calendar date and an HH:MM slot time"""
    return datetime.combine(day, datetime.min.time()) + timedelta(minutes=parse_time(time_str, end_of_day=True))


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute
