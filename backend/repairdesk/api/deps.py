"""Shared FastAPI dependencies."""

import secrets

from fastapi import Depends, Request

from ..core.config import Settings, get_settings
from ..core.errors import UnauthorizedError
from ..services.communications import CommunicationStore
from ..services.state import PriorityQueueState


def get_queue_state(request: Request) -> PriorityQueueState:
    return request.app.state.priority_queue


def get_message_store(request: Request) -> CommunicationStore:
    return request.app.state.message_store


def require_api_key(
    request: Request, settings: Settings = Depends(get_settings)
) -> None:
    """Check ``X-API-Key`` when a prioritization key is configured."""
    expected = settings.PRIORITIZATION_API_KEY
    if not expected:
        return
    provided = request.headers.get("X-API-Key", "")
    if not secrets.compare_digest(provided, expected):
        raise UnauthorizedError()
