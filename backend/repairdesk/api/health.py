"""Liveness probe."""

from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Report that the engine is up and which time zone it renders dates in."""
    return {"status": "ok", "service": "repairdesk-engine", "timezone": settings.TZ}
