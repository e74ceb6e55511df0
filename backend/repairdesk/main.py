"""Application entry point."""

from fastapi import FastAPI

from .api import api_router
from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logging import RequestIDMiddleware, init_logging
from .services.communications import CommunicationStore
from .services.state import PriorityQueueState


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    init_logging(settings.LOG_LEVEL)

    app = FastAPI(title="repairdesk-engine")
    app.state.priority_queue = PriorityQueueState()
    app.state.message_store = CommunicationStore()
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
