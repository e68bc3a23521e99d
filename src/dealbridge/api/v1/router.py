"""V1 API router -- aggregates all endpoint routers.

Paths are unprefixed: HubSpot webhook subscriptions and the Basecamp
OAuth redirect URI point at them directly.
"""

from __future__ import annotations

from fastapi import APIRouter

from src.dealbridge.api.v1 import auth, debug, health, projects, webhooks

router = APIRouter()

router.include_router(health.router)
router.include_router(webhooks.router)
router.include_router(projects.router)
router.include_router(auth.router)
router.include_router(debug.router)
