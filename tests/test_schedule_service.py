import pytest

from vetcare.errors import ConflictError, NotFoundError, ValidationError
from vetcare.models import ScheduleRule
from vetcare.services import ScheduleService


def test_create_rule_uses_configured_defaults(vet):
    rule = ScheduleService().create_rule(vet.id, 'Monday', '9:00', '17:00')
    assert rule.day_of_week == 'monday'
    assert rule.start_time == '09:00'
    assert rule.slot_duration == 30
    assert rule.max_appointments == 10
    assert rule.is_active is True


def test_one_rule_per_vet_and_weekday(vet):
    service = ScheduleService()
    service.create_rule(vet.id, 'monday', '09:00', '12:00')
    with pytest.raises(ConflictError):
        service.create_rule(vet.id, 'monday', '13:00', '17:00')


@pytest.mark.parametrize('day,start,end,duration', [
    ('funday', '09:00', '12:00', 30),
    ('monday', '12:00', '09:00', 30),
    ('monday', '09:00', '09:00', 30),
    ('monday', '09:00', '12:00', 4),
    ('monday', '09:00', '12:00', 241),
    ('monday', '9am', '12:00', 30),
])
def test_create_rule_validation(vet, day, start, end, duration):
    with pytest.raises(ValidationError):
        ScheduleService().create_rule(vet.id, day, start, end, slot_duration=duration)


def test_get_rules_ordered_monday_to_sunday(vet):
    service = ScheduleService()
    for day in ('sunday', 'wednesday', 'monday'):
        service.create_rule(vet.id, day, '09:00', '12:00')
    assert [r.day_of_week for r in service.get_rules(vet.id)] == ['monday', 'wednesday', 'sunday']


def test_update_rule_scoped_to_owner(vet, other_vet, monday_rule):
    service = ScheduleService()
    with pytest.raises(NotFoundError):
        service.update_rule(monday_rule.id, other_vet.id, {'end_time': '13:00'})

    updated = service.update_rule(monday_rule.id, vet.id, {'end_time': '13:00', 'is_active': False})
    assert updated.end_time == '13:00'
    assert updated.is_active is False


def test_update_rule_rejects_inverted_window_without_partial_write(vet, monday_rule):
    service = ScheduleService()
    with pytest.raises(ValidationError):
        service.update_rule(monday_rule.id, vet.id, {'start_time': '13:00'})
    assert service.get_rules(vet.id)[0].start_time == '09:00'


def test_delete_rule(vet, other_vet, monday_rule):
    service = ScheduleService()
    with pytest.raises(NotFoundError):
        service.delete_rule(monday_rule.id, other_vet.id)
    service.delete_rule(monday_rule.id, vet.id)
    assert ScheduleRule.query.count() == 0
