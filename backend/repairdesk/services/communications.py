"""Customer messaging: templates, validation and reminder rules.

Deciding and validating a message is pure. Handing it to the outside world
(a mail client, an SMS gateway, a WhatsApp deep link) goes through a
:class:`MessageDispatcher`, which is best effort: whatever it does, the
message status only reflects validation.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Protocol, Sequence
from urllib.parse import quote

import pytz

from ..domain.models import (
    Channel,
    CommunicationMessage,
    CommunicationTemplate,
    MessageStatus,
    ReminderRule,
    RepairOrder,
    RepairStage,
    ValidationResult,
)
from .stages import is_terminal, stage_to_status

logger = logging.getLogger(__name__)

SMS_MAX_LENGTH = 160
WHATSAPP_MAX_LENGTH = 4096
EMAIL_MAX_LENGTH = 10000

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

DEFAULT_TEMPLATES = (
    CommunicationTemplate(
        id="tpl_awaiting_parts",
        name="Esperando repuestos",
        channel=Channel.WHATSAPP,
        body=(
            "Hola {{name}}, seguimos esperando el repuesto para tu {{deviceModel}} "
            "(orden {{id}}). Te avisaremos apenas llegue."
        ),
    ),
    CommunicationTemplate(
        id="tpl_ready",
        name="Listo para retirar",
        channel=Channel.SMS,
        body="Hola {{name}}, tu {{deviceModel}} ya está listo para retirar. Orden {{id}}.",
    ),
    CommunicationTemplate(
        id="tpl_ready_followup",
        name="Recordatorio de retiro",
        channel=Channel.EMAIL,
        subject="Tu equipo te espera",
        body=(
            "Hola {{name}}, tu {{deviceModel}} está listo desde hace una semana. "
            "Recordá que podés retirarlo en el local presentando la orden {{id}}."
        ),
    ),
)

DEFAULT_REMINDER_RULES = (
    ReminderRule(
        id="rule_awaiting_parts_72h",
        stage=RepairStage.AWAITING_PARTS.value,
        inactivity_hours=72,
        template_id="tpl_awaiting_parts",
    ),
    ReminderRule(
        id="rule_ready_24h",
        stage=RepairStage.READY.value,
        inactivity_hours=24,
        template_id="tpl_ready",
    ),
    ReminderRule(
        id="rule_ready_7d",
        stage=RepairStage.READY.value,
        inactivity_hours=168,
        template_id="tpl_ready_followup",
    ),
)


class MessageDispatcher(Protocol):
    def dispatch(self, message: CommunicationMessage, link: str | None) -> None:
        ...


class LoggingDispatcher:
    """Dispatcher that only records the attempt in the log."""

    def dispatch(self, message: CommunicationMessage, link: str | None) -> None:
        logger.info(
            "Dispatching %s message %s for repair %s",
            message.channel.value,
            message.id,
            message.repair_id,
        )


class CommunicationStore:
    """Append-only record of messages, shared by one application."""

    def __init__(self) -> None:
        self._messages: List[CommunicationMessage] = []
        self._lock = threading.Lock()

    def add(self, message: CommunicationMessage) -> None:
        with self._lock:
            self._messages.append(message)

    def all(self) -> List[CommunicationMessage]:
        with self._lock:
            return list(self._messages)

    def for_repair(self, repair_id: str) -> List[CommunicationMessage]:
        return [m for m in self.all() if m.repair_id == repair_id]

    def last_reminder(self, rule_id: str, repair_id: str) -> CommunicationMessage | None:
        matches = [m for m in self.for_repair(repair_id) if m.rule_id == rule_id]
        return max(matches, key=lambda m: m.created_at) if matches else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)


def expand_template(template: str, variables: Mapping[str, object]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names become ``""``."""

    def _substitute(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_substitute, template or "")


def template_variables(repair: RepairOrder, tz_name: str = "UTC") -> Dict[str, str]:
    local_created = repair.created_at.astimezone(pytz.timezone(tz_name))
    return {
        "id": repair.id,
        "name": repair.customer_name,
        "customerName": repair.customer_name,
        "deviceModel": repair.device_model,
        "device": repair.device_model,
        "issue": repair.issue_description,
        "stage": repair.stage,
        "status": stage_to_status(repair.stage).value,
        "createdAt": local_created.strftime("%d/%m/%Y"),
    }


def validate_content(
    channel: Channel | str, content: str | None, sms_max_length: int = SMS_MAX_LENGTH
) -> ValidationResult:
    channel = Channel(channel)
    if not content or not content.strip():
        return ValidationResult(False, "Message content is empty")

    limit = {
        Channel.SMS: sms_max_length,
        Channel.WHATSAPP: WHATSAPP_MAX_LENGTH,
        Channel.EMAIL: EMAIL_MAX_LENGTH,
    }[channel]
    if len(content) > limit:
        return ValidationResult(
            False, f"{channel.value} content exceeds {limit} characters ({len(content)})"
        )
    return ValidationResult(True)


def build_contact_link(
    channel: Channel | str,
    recipient: str | None,
    content: str,
    subject: str | None = None,
) -> str | None:
    """Deep link that opens the customer's mail, SMS or WhatsApp client.

    Only the ``mailto:`` form carries a ``subject``.
    """
    if not recipient:
        return None
    channel = Channel(channel)
    body = quote(content, safe="")
    if channel is Channel.EMAIL:
        if subject:
            encoded_subject = quote(subject, safe="")
            return f"mailto:{recipient}?subject={encoded_subject}&body={body}"
        return f"mailto:{recipient}?body={body}"
    if channel is Channel.SMS:
        return f"sms:{recipient}?body={body}"
    digits = re.sub(r"\D", "", recipient)
    return f"https://wa.me/{digits}?text={body}"


def _default_recipient(repair: RepairOrder, channel: Channel) -> str | None:
    if channel is Channel.EMAIL:
        return repair.customer_email
    return repair.customer_phone


def send_message(
    store: CommunicationStore,
    repair: RepairOrder,
    channel: Channel | str,
    content: str,
    recipient: str | None = None,
    rule_id: str | None = None,
    dispatcher: MessageDispatcher | None = None,
    now: datetime | None = None,
    sms_max_length: int = SMS_MAX_LENGTH,
    subject: str | None = None,
) -> CommunicationMessage:
    """Validate, record and (best effort) dispatch one message."""
    channel = Channel(channel)
    verdict = validate_content(channel, content, sms_max_length)
    recipient = recipient or _default_recipient(repair, channel)
    subject = subject or None
    link = build_contact_link(channel, recipient, content, subject) if verdict.valid else None

    message = CommunicationMessage(
        id=str(uuid.uuid4()),
        repair_id=repair.id,
        channel=channel,
        content=content,
        status=MessageStatus.SENT if verdict.valid else MessageStatus.FAILED,
        created_at=now or datetime.now(timezone.utc),
        error=verdict.reason,
        rule_id=rule_id,
        recipient=recipient,
        subject=subject,
        link=link,
    )
    store.add(message)

    if message.status is MessageStatus.SENT and recipient:
        try:
            (dispatcher or LoggingDispatcher()).dispatch(message, link)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Dispatch of message %s failed: %s", message.id, exc)
    elif message.status is MessageStatus.FAILED:
        logger.info("Message for repair %s rejected: %s", repair.id, verdict.reason)
    return message


def schedule_reminders(
    rules: Sequence[ReminderRule],
    repairs: Sequence[RepairOrder],
    templates: Sequence[CommunicationTemplate],
    store: CommunicationStore,
    now: datetime | None = None,
    deduplicate: bool = False,
    dispatcher: MessageDispatcher | None = None,
    tz_name: str = "UTC",
    sms_max_length: int = SMS_MAX_LENGTH,
) -> List[CommunicationMessage]:
    """Evaluate every rule against every repair once.

    Delivered and cancelled repairs never get reminders. Without
    ``deduplicate`` each call sends again whatever matches. With it, a rule
    stays quiet for a repair until the repair shows new activity after the
    rule's last message.
    """
    now = now or datetime.now(timezone.utc)
    by_id = {template.id: template for template in templates}
    sent: List[CommunicationMessage] = []

    for rule in rules:
        if not rule.enabled:
            continue
        template = by_id.get(rule.template_id)
        if template is None:
            logger.warning("Reminder rule %s references unknown template %s", rule.id, rule.template_id)
            continue

        threshold = timedelta(hours=rule.inactivity_hours)
        for repair in repairs:
            if repair.stage != rule.stage or is_terminal(repair.stage):
                continue
            if now - repair.last_activity < threshold:
                continue
            if deduplicate:
                previous = store.last_reminder(rule.id, repair.id)
                if previous is not None and previous.created_at >= repair.last_activity:
                    continue
            variables = template_variables(repair, tz_name)
            content = expand_template(template.body, variables)
            subject = expand_template(template.subject, variables) if template.subject else None
            sent.append(
                send_message(
                    store,
                    repair,
                    template.channel,
                    content,
                    rule_id=rule.id,
                    dispatcher=dispatcher,
                    now=now,
                    sms_max_length=sms_max_length,
                    subject=subject,
                )
            )

    logger.debug("Reminder pass produced %d messages", len(sent))
    return sent
