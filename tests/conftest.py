from datetime import date, datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from vetcare import create_app
from vetcare.extensions import db
from vetcare.models import Booking, ScheduleRule, User

# Monday 10 June 2030, 10:00 local
FIXED_NOW = datetime(2030, 6, 10, 10, 0)
TODAY = FIXED_NOW.date()
TOMORROW = TODAY + timedelta(days=1)
NEXT_MONDAY = TODAY + timedelta(days=7)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def frozen_clock(monkeypatch, clock):
    """Routes build their services with the default clock; pin it"""
    for module in (
        'vetcare.services.booking_service',
        'vetcare.services.availability_service',
        'vetcare.services.consultation_service',
        'vetcare.services.video_session_service',
    ):
        monkeypatch.setattr(f'{module}.local_now', clock)
    return clock


def _make_user(email, role, first_name, last_name):
    user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    user.set_password('password123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def vet(app):
    return _make_user('vet@example.com', 'veterinarian', 'Amara', 'Okafor')


@pytest.fixture
def other_vet(app):
    return _make_user('vet2@example.com', 'veterinarian', 'Jonas', 'Berg')


@pytest.fixture
def owner(app):
    return _make_user('owner@example.com', 'pet_owner', 'Sam', 'Rivera')


@pytest.fixture
def other_owner(app):
    return _make_user('owner2@example.com', 'pet_owner', 'Kim', 'Lee')


@pytest.fixture
def farmer(app):
    return _make_user('farmer@example.com', 'farmer', 'Lena', 'Moreau')


@pytest.fixture
def admin(app):
    return _make_user('admin@example.com', 'admin', 'Site', 'Admin')


@pytest.fixture
def monday_rule(vet):
    rule = ScheduleRule(
        veterinarian_id=vet.id,
        day_of_week='monday',
        start_time='09:00',
        end_time='12:00',
        slot_duration=30,
        max_appointments=10,
        is_active=True,
    )
    db.session.add(rule)
    db.session.commit()
    return rule


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def make_booking(app):
    """Insert a booking row directly, bypassing service validation"""
    def _make(owner, vet, day=TOMORROW, start='09:00', end='09:30', status='pending', **extra):
        booking = Booking(
            pet_owner_id=owner.id,
            veterinarian_id=vet.id,
            scheduled_date=day,
            time_slot_start=start,
            time_slot_end=end,
            status=status,
            **extra,
        )
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make


def booking_payload(vet, day=TOMORROW, start='09:00', end='09:30', **extra):
    payload = {
        'veterinarian_id': vet.id,
        'scheduled_date': day.isoformat() if isinstance(day, date) else day,
        'time_slot_start': start,
        'time_slot_end': end,
    }
    payload.update(extra)
    return payload
