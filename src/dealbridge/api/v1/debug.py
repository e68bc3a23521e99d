"""Recent activity from the in-memory DebugLog."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.dealbridge.api.deps import get_debug_log
from src.dealbridge.observability.debug_log import DebugLog

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/logs")
async def recent_logs(debug_log: DebugLog = Depends(get_debug_log)) -> dict:
    return {"maxEntries": debug_log.maxlen, "entries": debug_log.entries()}
