"""
Demo data for local development: one user per role and a weekday schedule.
"""
import logging

from vetcare.extensions import db
from vetcare.models import ScheduleRule, User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        'email': 'admin@vetcare.local',
        'password': 'admin12345',
        'first_name': 'Site',
        'last_name': 'Admin',
        'role': 'admin',
    },
    {
        'email': 'vet@vetcare.local',
        'password': 'vet12345',
        'first_name': 'Amara',
        'last_name': 'Okafor',
        'role': 'veterinarian',
    },
    {
        'email': 'owner@vetcare.local',
        'password': 'owner12345',
        'first_name': 'Sam',
        'last_name': 'Rivera',
        'role': 'pet_owner',
    },
    {
        'email': 'farmer@vetcare.local',
        'password': 'farmer12345',
        'first_name': 'Lena',
        'last_name': 'Moreau',
        'role': 'farmer',
    },
]

DEMO_SCHEDULE = {
    'monday': ('09:00', '17:00'),
    'tuesday': ('09:00', '17:00'),
    'wednesday': ('09:00', '13:00'),
    'thursday': ('09:00', '17:00'),
    'friday': ('10:00', '16:00'),
}


def seed_demo_users():
    """Create the demo users that do not exist yet. Returns the created ones."""
    created = []
    for data in DEMO_USERS:
        if User.query.filter_by(email=data['email']).first():
            continue
        user = User(
            email=data['email'],
            first_name=data['first_name'],
            last_name=data['last_name'],
            role=data['role'],
            is_active=True,
        )
        user.set_password(data['password'])
        db.session.add(user)
        created.append(user)
    db.session.commit()
    return created


def seed_demo_schedule(vet):
    count = 0
    for day, (start, end) in DEMO_SCHEDULE.items():
        if ScheduleRule.query.filter_by(veterinarian_id=vet.id, day_of_week=day).first():
            continue
        db.session.add(ScheduleRule(
            veterinarian_id=vet.id,
            day_of_week=day,
            start_time=start,
            end_time=end,
            slot_duration=30,
            max_appointments=10,
            is_active=True,
        ))
        count += 1
    db.session.commit()
    return count


def seed_demo_data():
    try:
        users = seed_demo_users()
        vet = User.query.filter_by(email='vet@vetcare.local').first()
        rules = seed_demo_schedule(vet) if vet else 0
        logger.info("Seeded %d demo user(s) and %d schedule rule(s)", len(users), rules)
        return users, rules
    except Exception as e:
        db.session.rollback()
        logger.warning("Demo data seeding skipped: %s", e)
        return [], 0
