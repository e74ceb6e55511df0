"""Standalone stock alert endpoint."""

from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings
from ..domain import schemas
from ..services.inventory import generate_reorder_alerts
from .deps import require_api_key

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post(
    "/alerts",
    response_model=schemas.AlertsResponse,
    dependencies=[Depends(require_api_key)],
)
def reorder_alerts(
    body: schemas.AlertsRequest,
    settings: Settings = Depends(get_settings),
) -> schemas.AlertsResponse:
    """Products at or below the restock threshold."""
    alerts = generate_reorder_alerts(
        [p.to_domain() for p in body.products],
        body.threshold,
        default_threshold=settings.DEFAULT_REORDER_THRESHOLD,
    )
    return schemas.AlertsResponse.model_validate({"alerts": alerts})
