"""FastAPI dependencies resolving the components built in the app lifespan.

Everything lives on app.state so tests can swap in their own store,
queue or clients without touching module globals.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.dealbridge.auth.basecamp_oauth import BasecampOAuth
from src.dealbridge.config import Settings, get_settings
from src.dealbridge.crm.hubspot import HubSpotClient
from src.dealbridge.events.queue import ReconciliationQueue
from src.dealbridge.observability.debug_log import DebugLog
from src.dealbridge.projects.store import ProjectStore


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} is not initialized",
        )
    return value


async def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_store(request: Request) -> ProjectStore:
    return _state(request, "project_store")


async def get_queue(request: Request) -> ReconciliationQueue:
    return _state(request, "reconciliation_queue")


async def get_debug_log(request: Request) -> DebugLog:
    return _state(request, "debug_log")


async def get_hubspot(request: Request) -> HubSpotClient | None:
    """HubSpot client, or None when no token is configured."""
    return getattr(request.app.state, "hubspot_client", None)


async def get_oauth(request: Request) -> BasecampOAuth:
    oauth = getattr(request.app.state, "basecamp_oauth", None)
    if oauth is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Basecamp OAuth is not configured (BASECAMP_CLIENT_ID, BASECAMP_REDIRECT_URI)",
        )
    return oauth
