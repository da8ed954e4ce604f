from datetime import timedelta

from vetcare.extensions import db
from vetcare.models import AuditLog
from vetcare.utils.audit import (
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    get_booking_action_logs,
    get_user_action_logs,
    log_audit,
    log_booking_action,
)


def test_booking_actions_in_order(owner, vet, make_booking):
    booking = make_booking(owner, vet)
    log_booking_action(owner.id, 'pet_owner', BOOKING_CREATED, booking.id, {'slot': '09:00'})
    log_booking_action(vet.id, 'veterinarian', BOOKING_CONFIRMED, booking.id)

    logs = get_booking_action_logs(booking.id)
    assert [entry.action for entry in logs] == [BOOKING_CREATED, BOOKING_CONFIRMED]
    first = logs[0].to_dict()
    assert first['details'] == {'slot': '09:00', 'role': 'pet_owner'}
    assert first['user_name'] == 'Sam Rivera'


def test_user_logs_cover_owned_and_served_bookings(owner, other_owner, vet, make_booking):
    mine = make_booking(owner, vet, start='09:00', end='09:30')
    theirs = make_booking(other_owner, vet, start='09:30', end='10:00')
    log_booking_action(owner.id, 'pet_owner', BOOKING_CREATED, mine.id)
    log_booking_action(other_owner.id, 'pet_owner', BOOKING_CREATED, theirs.id)

    assert [entry.entity_id for entry in get_user_action_logs(owner.id)] == [mine.id]
    assert len(get_user_action_logs(vet.id)) == 2


def test_failed_audit_write_is_swallowed(owner):
    # action is NOT NULL, so this insert fails
    log_audit('booking', None, user_id=owner.id, entity_id='b-1')
    assert AuditLog.query.count() == 0
    # the session is still usable afterwards
    log_audit('booking', BOOKING_CREATED, user_id=owner.id, entity_id='b-1')
    assert AuditLog.query.count() == 1


def test_row_stamps_follow_the_local_clock(owner, vet, make_booking, clock, monkeypatch):
    monkeypatch.setattr('vetcare.models.base.local_now', clock)
    booking = make_booking(owner, vet)
    log_booking_action(owner.id, 'pet_owner', BOOKING_CREATED, booking.id)
    entry = get_booking_action_logs(booking.id)[0]

    assert booking.created_at == booking.updated_at == clock.now
    assert entry.created_at == clock.now

    clock.advance(minutes=5)
    booking.notes = 'Bring vaccination card'
    db.session.commit()
    assert booking.updated_at == clock.now
    assert booking.created_at == clock.now - timedelta(minutes=5)
