import asyncio

import pytest

from safeher.repositories import repository
from safeher.services import notifier

LOCATION_URL = "https://maps.google.com/?q=12.9716,77.5946"


@pytest.fixture
def event(device):
    return repository.create_sos_event(device_id="d1", latitude=12.9716, longitude=77.5946)


def _alert(event, contact):
    return asyncio.run(notifier.send_emergency_alert(event, contact, "Asha", LOCATION_URL))


def test_sms_success_records_sent_notification(event, gateways):
    contact = repository.create_contact(device_id="d1", name="Ravi", phone="8888888888")

    result = _alert(event, contact)

    assert result.success
    assert result.type == "sms"
    assert result.recipient == "8888888888"
    assert gateways.sms_calls == [("8888888888", notifier.sms_text("Asha", LOCATION_URL))]
    [row] = repository.list_event_notifications(event.event_id)
    assert row.status == "sent"
    assert row.external_id == "sms-1"
    assert row.sent_at is not None


def test_sms_failure_result_does_not_fall_back_to_email(event, gateways):
    gateways.sms_mode = "fail"
    contact = repository.create_contact(device_id="d1", name="Ravi", phone="8888888888", email="ravi@example.com")

    result = _alert(event, contact)

    assert not result.success
    assert result.error == "sms rejected"
    assert gateways.email_calls == []
    [row] = repository.list_event_notifications(event.event_id)
    assert row.status == "failed"
    assert row.error_message == "sms rejected"


def test_raised_sms_error_falls_back_to_email(event, gateways):
    gateways.sms_mode = "raise"
    contact = repository.create_contact(device_id="d1", name="Ravi", phone="8888888888", email="ravi@example.com")

    result = _alert(event, contact)

    assert result.success
    assert result.type == "email"
    assert result.recipient == "ravi@example.com"
    assert gateways.email_calls[0][1] == "EMERGENCY ALERT: Asha needs help"
    rows = {row.type: row for row in repository.list_event_notifications(event.event_id)}
    assert rows["sms"].status == "failed"
    assert rows["sms"].error_message == "sms gateway down"
    assert rows["email"].status == "sent"
    assert rows["sms"].notification_id != rows["email"].notification_id


def test_email_error_propagates(event, gateways):
    gateways.sms_mode = "raise"
    gateways.email_mode = "raise"
    contact = repository.create_contact(device_id="d1", name="Ravi", phone="8888888888", email="ravi@example.com")

    with pytest.raises(RuntimeError, match="email gateway down"):
        _alert(event, contact)

    statuses = {row.type: row.status for row in repository.list_event_notifications(event.event_id)}
    assert statuses == {"sms": "failed", "email": "failed"}


def test_contact_without_phone_or_email_is_unknown(event, gateways):
    contact = repository.create_contact(device_id="d1", name="Nobody", phone="")

    result = _alert(event, contact)

    assert not result.success
    assert result.recipient == "unknown"
    assert result.error == "No valid contact method available"
    assert repository.list_event_notifications(event.event_id) == []
    assert gateways.sms_calls == []


def test_notify_all_skips_inactive_contacts_and_counts_successes(event, gateways):
    repository.create_contact(device_id="d1", name="A", phone="1111111111", priority=2)
    repository.create_contact(device_id="d1", name="B", phone="2222222222", priority=0)
    repository.create_contact(device_id="d1", name="C", phone="3333333333", priority=1, is_active=False)
    repository.create_contact(device_id="d1", name="D", phone="", priority=3)

    results = asyncio.run(notifier.notify_all_contacts(event, "Asha", LOCATION_URL))

    assert [r.recipient for r in results] == ["2222222222", "1111111111", "unknown"]
    assert [phone for phone, _ in gateways.sms_calls] == ["2222222222", "1111111111"]
    assert repository.get_sos_event(event.event_id).notifications_sent == 2


def test_notify_all_keeps_going_when_a_contact_raises(event, gateways):
    gateways.sms_mode = "raise"
    gateways.email_mode = "raise"
    repository.create_contact(device_id="d1", name="A", phone="1111111111", email="a@example.com")
    repository.create_contact(device_id="d1", name="B", phone="2222222222", email="b@example.com")

    results = asyncio.run(notifier.notify_all_contacts(event, "Asha", LOCATION_URL))

    assert len(results) == 2
    assert all(not r.success for r in results)
    assert results[0].recipient == "1111111111"
    assert results[0].error == "email gateway down"
    assert repository.get_sos_event(event.event_id).notifications_sent == 0


def test_notifications_sent_is_recomputed_on_each_pass(event, gateways):
    repository.create_contact(device_id="d1", name="A", phone="1111111111")
    asyncio.run(notifier.notify_all_contacts(event, "Asha", LOCATION_URL))
    assert repository.get_sos_event(event.event_id).notifications_sent == 1

    gateways.sms_mode = "fail"
    asyncio.run(notifier.notify_all_contacts(event, "Asha", LOCATION_URL))
    assert repository.get_sos_event(event.event_id).notifications_sent == 0
