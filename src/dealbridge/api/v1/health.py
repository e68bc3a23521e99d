"""Health and status endpoints.

/health is a bare liveness check. / and /api/status report how many
projects are stored and which integrations have credentials.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.dealbridge.api.deps import get_app_settings, get_store
from src.dealbridge.config import Settings
from src.dealbridge.projects.store import ProjectStore

router = APIRouter(tags=["health"])

STATUS_MESSAGE = "HubSpot-Basecamp Integration"


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)):
    """Basic liveness check, no dependencies touched."""
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _status(settings: Settings, store: ProjectStore) -> dict:
    projects = await store.load()
    return {
        "status": "running",
        "message": STATUS_MESSAGE,
        "totalProjects": len(projects),
        "hubspotConnected": settings.hubspot_configured,
        "basecampConnected": settings.basecamp_configured,
    }


@router.get("/")
async def root(
    settings: Settings = Depends(get_app_settings),
    store: ProjectStore = Depends(get_store),
):
    return await _status(settings, store)


@router.get("/api/status")
async def api_status(
    settings: Settings = Depends(get_app_settings),
    store: ProjectStore = Depends(get_store),
):
    """Service status with project count and integration flags."""
    return await _status(settings, store)
