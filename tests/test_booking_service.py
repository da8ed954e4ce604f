from datetime import datetime, timedelta

import pytest

from conftest import NEXT_MONDAY, TODAY, TOMORROW, booking_payload
from vetcare.errors import ConflictError, NotFoundError, ValidationError
from vetcare.extensions import db
from vetcare.models import Booking
from vetcare.services import AvailabilityService, BookingService, ScheduleService


@pytest.fixture
def service(app, clock):
    return BookingService(clock=clock)


def test_create_booking_is_pending(service, owner, vet):
    booking = service.create_booking(owner.id, booking_payload(vet, start='9:00', end='9:30'))
    assert booking.status == 'pending'
    assert booking.time_slot_start == '09:00'
    assert booking.booking_type == 'video_call'
    assert booking.priority == 'normal'
    assert booking.pet_owner_id == owner.id


def test_same_slot_twice_conflicts(service, owner, other_owner, vet):
    service.create_booking(owner.id, booking_payload(vet))
    with pytest.raises(ConflictError):
        service.create_booking(other_owner.id, booking_payload(vet))


def test_unique_index_catches_a_lost_race(service, owner, other_owner, vet, monkeypatch):
    service.create_booking(owner.id, booking_payload(vet))
    # Simulate a concurrent request that passed the pre-check
    monkeypatch.setattr(BookingService, '_ensure_slot_free', lambda self, *a, **kw: None)
    with pytest.raises(ConflictError):
        service.create_booking(other_owner.id, booking_payload(vet))
    assert Booking.query.count() == 1


def test_slot_is_free_again_after_cancel(service, owner, other_owner, vet):
    first = service.create_booking(owner.id, booking_payload(vet))
    service.cancel_booking(first.id)
    second = service.create_booking(other_owner.id, booking_payload(vet))
    assert second.status == 'pending'


def test_same_slot_with_other_vet_is_fine(service, owner, vet, other_vet):
    service.create_booking(owner.id, booking_payload(vet))
    service.create_booking(owner.id, booking_payload(other_vet))
    assert Booking.query.count() == 2


@pytest.mark.parametrize('day,start', [
    (TODAY, '09:30'),
    (TODAY, '10:00'),
    (TODAY - timedelta(days=1), '15:00'),
])
def test_no_past_bookings(service, owner, vet, day, start):
    with pytest.raises(ValidationError):
        service.create_booking(owner.id, booking_payload(vet, day=day, start=start, end='23:00'))


def test_later_today_is_bookable(service, owner, vet):
    booking = service.create_booking(owner.id, booking_payload(vet, day=TODAY, start='10:30', end='11:00'))
    assert booking.scheduled_date == TODAY


def test_create_booking_validation(service, owner, vet):
    with pytest.raises(ValidationError):
        service.create_booking(owner.id, {'veterinarian_id': vet.id})
    with pytest.raises(ValidationError):
        service.create_booking(owner.id, booking_payload(vet, start='10:00', end='09:30'))
    with pytest.raises(ValidationError):
        service.create_booking(owner.id, booking_payload(vet, booking_type='carrier_pigeon'))
    with pytest.raises(ValidationError):
        service.create_booking(owner.id, booking_payload(vet, priority='whenever'))


def test_create_booking_requires_a_veterinarian(service, owner, other_owner):
    with pytest.raises(NotFoundError):
        service.create_booking(owner.id, booking_payload(other_owner))


def test_confirm_only_from_pending(service, owner, vet, clock):
    booking = service.create_booking(owner.id, booking_payload(vet))
    confirmed = service.confirm_booking(booking.id)
    assert confirmed.status == 'confirmed'
    assert confirmed.confirmed_at == clock.now

    with pytest.raises(ValidationError):
        service.confirm_booking(booking.id)


def test_confirm_after_slot_end_rejected(service, owner, vet, make_booking):
    booking = make_booking(owner, vet, day=TODAY, start='09:00', end='09:30')
    with pytest.raises(ValidationError):
        service.confirm_booking(booking.id)
    assert service.get_booking(booking.id).status == 'pending'


def test_cancel_records_reason(service, owner, vet):
    booking = service.create_booking(owner.id, booking_payload(vet))
    cancelled = service.cancel_booking(booking.id, 'Pet recovered')
    assert cancelled.status == 'cancelled'
    assert cancelled.cancellation_reason == 'Pet recovered'


def test_cancel_default_reason_and_terminal(service, owner, vet):
    booking = service.create_booking(owner.id, booking_payload(vet))
    assert service.cancel_booking(booking.id).cancellation_reason == 'No reason provided'
    with pytest.raises(ValidationError):
        service.cancel_booking(booking.id)


def test_get_booking_missing(service):
    with pytest.raises(NotFoundError):
        service.get_booking('does-not-exist')


def test_missed_sweep_marks_overdue_confirmed_only(service, owner, vet, make_booking):
    overdue = make_booking(owner, vet, day=TODAY, start='09:00', end='09:30', status='confirmed')
    ends_now = make_booking(owner, vet, day=TODAY, start='09:30', end='10:00', status='confirmed')
    upcoming = make_booking(owner, vet, day=TODAY, start='10:00', end='10:30', status='confirmed')
    yesterday = make_booking(owner, vet, day=TODAY - timedelta(days=1), start='15:00', end='15:30', status='confirmed')
    pending = make_booking(owner, vet, day=TODAY, start='08:00', end='08:30', status='pending')

    assert service.mark_missed_bookings() == 3
    statuses = {b.id: service.get_booking(b.id).status for b in (overdue, ends_now, upcoming, yesterday, pending)}
    assert statuses == {
        overdue.id: 'missed',
        ends_now.id: 'missed',
        upcoming.id: 'confirmed',
        yesterday.id: 'missed',
        pending.id: 'pending',
    }


def test_missed_sweep_is_idempotent(service, owner, vet, make_booking):
    make_booking(owner, vet, day=TODAY, start='09:00', end='09:30', status='confirmed')
    assert service.mark_missed_bookings() == 1
    assert service.mark_missed_bookings() == 0
    assert [b.status for b in Booking.query.all()] == ['missed']


def test_missed_sweep_skips_bookings_with_a_consultation(service, owner, vet, make_booking):
    from vetcare.models import Consultation
    consultation = Consultation(user_id=owner.id, veterinarian_id=vet.id, status='in_progress')
    db.session.add(consultation)
    db.session.commit()
    make_booking(owner, vet, day=TODAY, start='09:00', end='09:30', status='confirmed',
                 consultation_id=consultation.id)
    assert service.mark_missed_bookings() == 0


def test_list_bookings_is_role_scoped(service, owner, other_owner, vet, other_vet, admin, make_booking):
    make_booking(owner, vet, start='09:00', end='09:30')
    make_booking(other_owner, vet, start='09:30', end='10:00')
    make_booking(owner, other_vet, start='09:00', end='09:30')

    assert service.list_bookings(owner.id, 'pet_owner')['total'] == 2
    assert service.list_bookings(other_owner.id, 'pet_owner')['total'] == 1
    assert service.list_bookings(vet.id, 'veterinarian')['total'] == 2
    assert service.list_bookings(admin.id, 'admin')['total'] == 3


def test_list_bookings_pagination_and_order(service, owner, vet, make_booking):
    make_booking(owner, vet, day=TOMORROW, start='10:00', end='10:30')
    make_booking(owner, vet, day=TOMORROW, start='09:00', end='09:30')
    make_booking(owner, vet, day=NEXT_MONDAY, start='09:00', end='09:30')

    page = service.list_bookings(owner.id, 'pet_owner', limit=2, offset=0)
    assert page['total'] == 3
    assert page['has_more'] is True
    assert [(b.scheduled_date, b.time_slot_start) for b in page['items']] == [
        (NEXT_MONDAY, '09:00'), (TOMORROW, '09:00'),
    ]

    last = service.list_bookings(owner.id, 'pet_owner', limit=2, offset=2)
    assert len(last['items']) == 1
    assert last['has_more'] is False


def test_list_bookings_filters_status(service, owner, vet, make_booking):
    make_booking(owner, vet, start='09:00', end='09:30', status='pending')
    make_booking(owner, vet, start='09:30', end='10:00', status='cancelled')
    page = service.list_bookings(owner.id, 'pet_owner', status='cancelled')
    assert [b.status for b in page['items']] == ['cancelled']


def test_list_bookings_survives_a_failing_sweep(service, owner, vet, make_booking, monkeypatch):
    make_booking(owner, vet)

    def broken_sweep(self):
        raise RuntimeError('database hiccup')

    monkeypatch.setattr(BookingService, 'mark_missed_bookings', broken_sweep)
    assert service.list_bookings(owner.id, 'pet_owner')['total'] == 1


@pytest.mark.parametrize('initiator,expected', [
    ('pet_owner', 'pending'),
    ('farmer', 'pending'),
    ('admin', 'pending'),
    ('veterinarian', 'confirmed'),
])
def test_reschedule_pair(service, owner, vet, make_booking, initiator, expected):
    old = make_booking(owner, vet, day=TOMORROW, start='09:00', end='09:30', status='confirmed',
                       reason_for_visit='Limping on the left leg')
    new = service.reschedule_booking(old.id, NEXT_MONDAY.isoformat(), '11:00', '11:30', initiator_role=initiator)

    assert service.get_booking(old.id).status == 'rescheduled'
    assert new.id != old.id
    assert new.rescheduled_from == old.id
    assert new.status == expected
    assert (new.confirmed_at is not None) == (expected == 'confirmed')
    assert new.scheduled_date == NEXT_MONDAY
    assert new.reason_for_visit == 'Limping on the left leg'
    assert Booking.query.filter_by(rescheduled_from=old.id).count() == 1


def test_reschedule_into_own_slot_is_allowed(service, owner, vet, make_booking):
    old = make_booking(owner, vet, day=TOMORROW, start='09:00', end='09:30', status='confirmed')
    new = service.reschedule_booking(old.id, TOMORROW, '09:00', '09:30', initiator_role='veterinarian')
    assert new.time_slot_start == '09:00'


def test_reschedule_conflict_leaves_old_booking_untouched(service, owner, other_owner, vet, make_booking):
    old = make_booking(owner, vet, day=TOMORROW, start='09:00', end='09:30', status='confirmed')
    make_booking(other_owner, vet, day=NEXT_MONDAY, start='11:00', end='11:30')
    with pytest.raises(ConflictError):
        service.reschedule_booking(old.id, NEXT_MONDAY, '11:00', '11:30', initiator_role='pet_owner')
    assert service.get_booking(old.id).status == 'confirmed'
    assert Booking.query.count() == 2


@pytest.mark.parametrize('status', ['pending', 'cancelled', 'rescheduled'])
def test_reschedule_requires_confirmed_or_missed(service, owner, vet, make_booking, status):
    old = make_booking(owner, vet, status=status)
    with pytest.raises(ValidationError):
        service.reschedule_booking(old.id, NEXT_MONDAY, '11:00', '11:30', initiator_role='pet_owner')


def test_reschedule_into_the_past_rejected(service, owner, vet, make_booking):
    old = make_booking(owner, vet, status='confirmed')
    with pytest.raises(ValidationError):
        service.reschedule_booking(old.id, TODAY, '08:00', '08:30', initiator_role='veterinarian')


def test_booking_walkthrough(owner, other_owner, vet, clock):
    """Schedule, book, confirm, miss, reschedule"""
    ScheduleService().create_rule(vet.id, 'monday', '09:00', '10:00', slot_duration=30)
    availability = AvailabilityService(clock=clock)
    bookings = BookingService(clock=clock)

    slots = availability.compute_availability(vet.id, NEXT_MONDAY)['slots']
    assert [(s['start_time'], s['end_time'], s['is_available']) for s in slots] == [
        ('09:00', '09:30', True), ('09:30', '10:00', True),
    ]

    a = bookings.create_booking(owner.id, booking_payload(vet, day=NEXT_MONDAY))
    assert a.status == 'pending'
    slots = availability.compute_availability(vet.id, NEXT_MONDAY)['slots']
    assert slots[0] == {'start_time': '09:00', 'end_time': '09:30', 'is_available': False, 'booking_id': a.id}
    assert slots[1]['is_available'] is True

    with pytest.raises(ConflictError):
        bookings.create_booking(other_owner.id, booking_payload(vet, day=NEXT_MONDAY))

    a = bookings.confirm_booking(a.id)
    assert a.status == 'confirmed'
    assert a.confirmed_at is not None

    clock.now = datetime.combine(NEXT_MONDAY, datetime.min.time()) + timedelta(hours=10)
    listed = bookings.list_bookings(owner.id, 'pet_owner')
    assert [b.status for b in listed['items']] == ['missed']

    next_tuesday = NEXT_MONDAY + timedelta(days=1)
    b = bookings.reschedule_booking(a.id, next_tuesday, '09:00', '09:30', initiator_role='pet_owner')
    assert bookings.get_booking(a.id).status == 'rescheduled'
    assert b.status == 'pending'
    assert b.rescheduled_from == a.id


def test_last_slot_before_midnight_can_be_booked(service, owner, vet, clock):
    ScheduleService().create_rule(vet.id, 'monday', '23:00', '23:59', slot_duration=30)
    slots = AvailabilityService(clock=clock).compute_availability(vet.id, NEXT_MONDAY)['slots']
    last = slots[-1]
    assert (last['start_time'], last['end_time']) == ('23:30', '24:00')

    booking = service.create_booking(owner.id, booking_payload(
        vet, day=NEXT_MONDAY, start=last['start_time'], end=last['end_time']))
    assert booking.time_slot_end == '24:00'
    slots = AvailabilityService(clock=clock).compute_availability(vet.id, NEXT_MONDAY)['slots']
    assert slots[-1]['booking_id'] == booking.id


def test_unique_index_catches_a_lost_reschedule_race(service, owner, other_owner, vet, make_booking, monkeypatch):
    old = make_booking(owner, vet, day=TOMORROW, start='09:00', end='09:30', status='confirmed')
    make_booking(other_owner, vet, day=NEXT_MONDAY, start='11:00', end='11:30')
    # Simulate a concurrent booking that took the slot after the pre-check
    monkeypatch.setattr(BookingService, '_ensure_slot_free', lambda self, *a, **kw: None)
    with pytest.raises(ConflictError):
        service.reschedule_booking(old.id, NEXT_MONDAY, '11:00', '11:30', initiator_role='veterinarian')

    db.session.expire_all()
    assert service.get_booking(old.id).status == 'confirmed'
    assert Booking.query.filter_by(rescheduled_from=old.id).count() == 0
    assert Booking.query.count() == 2
