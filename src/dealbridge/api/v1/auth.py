"""Basecamp OAuth helper endpoints.

An operator opens /auth/basecamp in a browser, approves the integration,
and the callback returns the token and account ids to put into
BASECAMP_ACCESS_TOKEN / BASECAMP_ACCOUNT_ID. Tokens are not stored.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from src.dealbridge.api.deps import get_oauth
from src.dealbridge.auth.basecamp_oauth import BasecampOAuth
from src.dealbridge.errors import RemoteError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/basecamp")
async def start_basecamp_auth(oauth: BasecampOAuth = Depends(get_oauth)) -> RedirectResponse:
    return RedirectResponse(oauth.authorization_url(), status_code=status.HTTP_302_FOUND)


@router.get("/basecamp/callback")
async def basecamp_callback(
    code: str | None = Query(default=None),
    error: str | None = Query(default=None),
    oauth: BasecampOAuth = Depends(get_oauth),
) -> dict:
    """Exchange the authorization code and list reachable accounts."""
    if error or not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Authorization was not granted: {error or 'missing code'}",
        )

    try:
        tokens = await oauth.exchange_code(code)
        accounts = await oauth.fetch_accounts(tokens["access_token"])
    except RemoteError as exc:
        logger.error("auth.basecamp_exchange_failed", status_code=exc.status_code, error=exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Basecamp token exchange failed (status={exc.status_code})",
        )

    logger.info("auth.basecamp_authorized", account_count=len(accounts))
    return {
        "access_token": tokens.get("access_token"),
        "refresh_token": tokens.get("refresh_token"),
        "expires_in": tokens.get("expires_in"),
        "accounts": accounts,
    }
