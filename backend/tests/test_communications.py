"""Tests for templates, message validation and reminder rules."""

from datetime import timedelta

import pytest

from conftest import NOW, hours_ago, make_repair
from repairdesk.domain.models import (
    Channel,
    CommunicationTemplate,
    MessageStatus,
    ReminderRule,
)
from repairdesk.services.communications import (
    DEFAULT_REMINDER_RULES,
    DEFAULT_TEMPLATES,
    CommunicationStore,
    build_contact_link,
    expand_template,
    schedule_reminders,
    send_message,
    template_variables,
    validate_content,
)


class RecordingDispatcher:
    def __init__(self):
        self.calls = []

    def dispatch(self, message, link):
        self.calls.append((message.id, link))


class BrokenDispatcher:
    def dispatch(self, message, link):
        raise RuntimeError("no mail client")


READY_TEMPLATE = CommunicationTemplate(
    id="tpl_ready", name="Listo", channel=Channel.SMS, body="Hola {{name}}, orden {{id}} lista."
)
READY_RULE = ReminderRule(id="ready_24h", stage="ready", inactivity_hours=24, template_id="tpl_ready")


def test_expand_template():
    assert (
        expand_template("Hola {{name}}, número {{id}}", {"name": "Ana", "id": 123})
        == "Hola Ana, número 123"
    )


def test_unresolved_placeholders_become_empty():
    assert expand_template("Hola {{missing}}!", {}) == "Hola !"
    assert expand_template("{{ name }}|{{none}}", {"name": "Ana", "none": None}) == "Ana|"


def test_template_variables_use_local_date():
    repair = make_repair(created_at=NOW.replace(hour=1), stage="ready")
    variables = template_variables(repair, "America/Argentina/Buenos_Aires")
    assert variables["createdAt"] == "31/05/2024"
    assert variables["status"] == "completed"
    assert variables["name"] == variables["customerName"] == "Ana"


def test_sms_length_boundary():
    assert validate_content("sms", "x" * 160).valid
    result = validate_content("sms", "x" * 161)
    assert not result.valid
    assert "160" in result.reason


def test_other_channel_limits():
    assert validate_content(Channel.WHATSAPP, "x" * 161).valid
    assert not validate_content(Channel.WHATSAPP, "x" * 4097).valid
    assert validate_content(Channel.EMAIL, "x" * 5000).valid


@pytest.mark.parametrize("content", ["", "   ", None])
def test_empty_content_is_invalid(content):
    assert not validate_content("email", content).valid


def test_unknown_channel_raises():
    with pytest.raises(ValueError):
        validate_content("fax", "hola")


def test_contact_links():
    assert build_contact_link("sms", "+5491155550000", "Hola Ana") == (
        "sms:+5491155550000?body=Hola%20Ana"
    )
    assert build_contact_link("whatsapp", "+54 9 11 5555-0000", "Hola") == (
        "https://wa.me/5491155550000?text=Hola"
    )
    assert build_contact_link("email", "ana@example.com", "Hola").startswith("mailto:ana@example.com")
    assert build_contact_link("sms", None, "Hola") is None


def test_send_message_records_sent_message():
    store = CommunicationStore()
    dispatcher = RecordingDispatcher()
    repair = make_repair(customer_phone="+5491155550000")

    message = send_message(store, repair, "sms", "Tu equipo está listo", dispatcher=dispatcher, now=NOW)

    assert message.status is MessageStatus.SENT
    assert message.recipient == "+5491155550000"
    assert message.created_at == NOW
    assert store.all() == [message]
    assert dispatcher.calls == [(message.id, message.link)]


def test_send_message_marks_invalid_content_failed():
    store = CommunicationStore()
    dispatcher = RecordingDispatcher()

    message = send_message(store, make_repair(customer_phone="123"), Channel.SMS, "x" * 161,
                           dispatcher=dispatcher)

    assert message.status is MessageStatus.FAILED
    assert message.error
    assert len(store) == 1
    assert dispatcher.calls == []


def test_dispatch_failure_does_not_change_status():
    store = CommunicationStore()
    repair = make_repair(customer_email="ana@example.com")

    message = send_message(store, repair, "email", "Hola", dispatcher=BrokenDispatcher())

    assert message.status is MessageStatus.SENT
    assert message.recipient == "ana@example.com"


def test_reminder_fires_after_inactivity():
    store = CommunicationStore()
    stale = make_repair("stale", stage="ready", updated_at=hours_ago(30))
    fresh = make_repair("fresh", stage="ready", updated_at=hours_ago(2))
    other = make_repair("other", stage="in_repair", created_at=hours_ago(300))

    sent = schedule_reminders([READY_RULE], [stale, fresh, other], [READY_TEMPLATE], store, now=NOW)

    assert [m.repair_id for m in sent] == ["stale"]
    assert sent[0].content == "Hola Ana, orden stale lista."
    assert sent[0].rule_id == "ready_24h"
    assert store.all() == sent


def test_inactivity_threshold_is_inclusive_and_falls_back_to_created_at():
    store = CommunicationStore()
    repair = make_repair(stage="ready", created_at=hours_ago(24))
    assert len(schedule_reminders([READY_RULE], [repair], [READY_TEMPLATE], store, now=NOW)) == 1


def test_reminders_repeat_without_deduplication():
    store = CommunicationStore()
    repair = make_repair(stage="ready", updated_at=hours_ago(30))
    for _ in range(2):
        schedule_reminders([READY_RULE], [repair], [READY_TEMPLATE], store, now=NOW)
    assert len(store) == 2


def test_deduplication_waits_for_new_activity():
    store = CommunicationStore()
    repair = make_repair(stage="ready", updated_at=hours_ago(30))

    schedule_reminders([READY_RULE], [repair], [READY_TEMPLATE], store, now=NOW, deduplicate=True)
    again = schedule_reminders(
        [READY_RULE], [repair], [READY_TEMPLATE], store, now=NOW + timedelta(hours=5), deduplicate=True
    )
    assert again == []

    touched = make_repair(stage="ready", updated_at=NOW + timedelta(hours=1))
    later = schedule_reminders(
        [READY_RULE], [touched], [READY_TEMPLATE], store, now=NOW + timedelta(hours=30), deduplicate=True
    )
    assert len(later) == 1
    assert len(store) == 2


def test_rules_without_template_or_disabled_are_skipped():
    store = CommunicationStore()
    repair = make_repair(stage="ready", updated_at=hours_ago(30))
    rules = [
        ReminderRule(id="orphan", stage="ready", inactivity_hours=1, template_id="missing"),
        ReminderRule(id="off", stage="ready", inactivity_hours=1, template_id="tpl_ready", enabled=False),
    ]
    assert schedule_reminders(rules, [repair], [READY_TEMPLATE], store, now=NOW) == []


def test_overlong_sms_reminder_is_recorded_as_failed():
    store = CommunicationStore()
    template = CommunicationTemplate(id="long", name="", channel=Channel.SMS, body="{{issue}}")
    rule = ReminderRule(id="r", stage="received", inactivity_hours=0, template_id="long")
    repair = make_repair(issue_description="a" * 200)

    (message,) = schedule_reminders([rule], [repair], [template], store, now=NOW)

    assert message.status is MessageStatus.FAILED


def test_default_rules_fit_their_channels():
    store = CommunicationStore()
    repairs = [
        make_repair("parts", stage="awaiting_parts", customer_name="Juan Carlos Rodríguez",
                    device_model="Samsung Galaxy S23 Ultra", updated_at=hours_ago(80)),
        make_repair("ready", stage="ready", customer_name="Juan Carlos Rodríguez",
                    device_model="Samsung Galaxy S23 Ultra", updated_at=hours_ago(200)),
    ]

    sent = schedule_reminders(DEFAULT_REMINDER_RULES, repairs, DEFAULT_TEMPLATES, store, now=NOW)

    assert [(m.repair_id, m.rule_id) for m in sent] == [
        ("parts", "rule_awaiting_parts_72h"),
        ("ready", "rule_ready_24h"),
        ("ready", "rule_ready_7d"),
    ]
    assert all(m.status is MessageStatus.SENT for m in sent)


def test_email_reminder_carries_expanded_subject():
    store = CommunicationStore()
    template = CommunicationTemplate(
        id="tpl_mail", name="Retiro", channel=Channel.EMAIL,
        subject="Tu {{deviceModel}} te espera", body="Hola",
    )
    rule = ReminderRule(id="mail_7d", stage="ready", inactivity_hours=168, template_id="tpl_mail")
    repair = make_repair(stage="ready", customer_email="ana@example.com", updated_at=hours_ago(200))

    (message,) = schedule_reminders([rule], [repair], [template], store, now=NOW)

    assert message.subject == "Tu iPhone 13 te espera"
    assert message.link == (
        "mailto:ana@example.com?subject=Tu%20iPhone%2013%20te%20espera&body=Hola"
    )


def test_messages_without_subject_keep_plain_links():
    store = CommunicationStore()
    message = send_message(store, make_repair(customer_email="ana@example.com"), "email", "Hola")
    assert message.subject is None
    assert message.link == "mailto:ana@example.com?body=Hola"


def test_closed_repairs_get_no_reminders():
    store = CommunicationStore()
    rules = [
        ReminderRule(id="after", stage="delivered", inactivity_hours=0, template_id="tpl_ready"),
        ReminderRule(id="gone", stage="cancelled", inactivity_hours=0, template_id="tpl_ready"),
    ]
    repairs = [make_repair("d", stage="delivered"), make_repair("c", stage="cancelled")]

    assert schedule_reminders(rules, repairs, [READY_TEMPLATE], store, now=NOW) == []
    assert len(store) == 0
