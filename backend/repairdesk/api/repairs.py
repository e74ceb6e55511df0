"""Repair queue, analytics, inventory sync and messaging endpoints."""

import logging

from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings
from ..domain import schemas
from ..domain.models import DEFAULT_PRIORITY_CONFIG
from ..services.analytics import (
    correlate_symptoms,
    estimate_durations,
    recommend_diagnosis,
)
from ..services.communications import (
    DEFAULT_REMINDER_RULES,
    DEFAULT_TEMPLATES,
    CommunicationStore,
    schedule_reminders,
    send_message,
)
from ..services.inventory import cost_report, suggest_reservations
from ..services.state import PriorityQueueState
from .deps import get_message_store, get_queue_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/repairs", tags=["repairs"])


def _queue_response(state: PriorityQueueState) -> schemas.PriorityResponse:
    config, queue = state.queue()
    return schemas.PriorityResponse.model_validate({"queue": queue, "config": config})


@router.get("/priority", response_model=schemas.PriorityResponse)
def get_priority_queue(
    state: PriorityQueueState = Depends(get_queue_state),
) -> schemas.PriorityResponse:
    """Return the current ranked queue and configuration."""
    return _queue_response(state)


@router.post("/priority", response_model=schemas.PriorityResponse)
def update_priority_queue(
    body: schemas.PriorityRequest,
    state: PriorityQueueState = Depends(get_queue_state),
) -> schemas.PriorityResponse:
    """Merge a config override and/or replace the repairs, then rank."""
    state.update(
        config_changes=body.config.changes() if body.config else None,
        repairs=[r.to_domain() for r in body.repairs] if body.repairs is not None else None,
    )
    return _queue_response(state)


@router.post("/analytics", response_model=schemas.AnalyticsResponse)
def repair_analytics(body: schemas.AnalyticsRequest) -> schemas.AnalyticsResponse:
    repairs = [r.to_domain() for r in body.repairs]
    return schemas.AnalyticsResponse.model_validate(
        {
            "metrics": estimate_durations(repairs),
            "correlations": correlate_symptoms(repairs),
            "recommendations": recommend_diagnosis(repairs, body.issue_text),
        }
    )


@router.post("/inventory", response_model=schemas.InventoryResponse)
def repair_inventory(
    body: schemas.InventoryRequest,
    settings: Settings = Depends(get_settings),
) -> schemas.InventoryResponse:
    """Reserve stock for open repairs in priority order."""
    repairs = [r.to_domain() for r in body.repairs]
    products = [p.to_domain() for p in body.products]
    config = body.config.apply(DEFAULT_PRIORITY_CONFIG) if body.config else DEFAULT_PRIORITY_CONFIG

    result = suggest_reservations(
        repairs,
        products,
        config,
        default_threshold=settings.DEFAULT_REORDER_THRESHOLD,
    )
    return schemas.InventoryResponse.model_validate(
        {
            "reservations": result.reservations,
            "alerts": result.alerts,
            "shortfalls": result.shortfalls,
            "report": cost_report(result.reservations, products, repairs),
        }
    )


@router.post("/communications", response_model=schemas.MessageResponse)
def create_message(
    body: schemas.MessageRequest,
    store: CommunicationStore = Depends(get_message_store),
    settings: Settings = Depends(get_settings),
) -> schemas.MessageResponse:
    message = send_message(
        store,
        body.repair.to_domain(),
        body.channel,
        body.content,
        recipient=body.recipient,
        subject=body.subject,
        sms_max_length=settings.SMS_MAX_LENGTH,
    )
    return schemas.MessageResponse.model_validate({"message": message})


@router.get("/communications", response_model=schemas.MessagesResponse)
def list_messages(
    store: CommunicationStore = Depends(get_message_store),
) -> schemas.MessagesResponse:
    return schemas.MessagesResponse.model_validate({"messages": store.all()})


@router.post("/communications/reminders", response_model=schemas.MessagesResponse)
def run_reminders(
    body: schemas.ReminderRequest,
    store: CommunicationStore = Depends(get_message_store),
    settings: Settings = Depends(get_settings),
) -> schemas.MessagesResponse:
    """Evaluate reminder rules once against the posted repairs."""
    rules = [r.to_domain() for r in body.rules] if body.rules is not None else DEFAULT_REMINDER_RULES
    templates = (
        [t.to_domain() for t in body.templates]
        if body.templates is not None
        else DEFAULT_TEMPLATES
    )
    deduplicate = (
        body.deduplicate if body.deduplicate is not None else settings.REMINDER_DEDUPLICATION
    )
    messages = schedule_reminders(
        rules,
        [r.to_domain() for r in body.repairs],
        templates,
        store,
        deduplicate=deduplicate,
        tz_name=settings.TZ,
        sms_max_length=settings.SMS_MAX_LENGTH,
    )
    logger.info("Reminder run sent %d messages", len(messages))
    return schemas.MessagesResponse.model_validate({"messages": messages})
