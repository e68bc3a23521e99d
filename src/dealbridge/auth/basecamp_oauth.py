"""Basecamp OAuth 2 helper (37signals Launchpad, web_server flow).

Used once by an operator to obtain the BASECAMP_ACCESS_TOKEN and
BASECAMP_ACCOUNT_ID that BasecampProjectHost needs:

1. GET /auth/basecamp redirects to authorization_url()
2. Launchpad redirects back to BASECAMP_REDIRECT_URI with ?code=
3. exchange_code() trades the code for tokens
4. fetch_accounts() lists the Basecamp accounts the token can reach
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
import structlog

from src.dealbridge.config import Settings
from src.dealbridge.errors import RemoteError

logger = structlog.get_logger(__name__)

BASECAMP_PRODUCTS = ("bc3", "bc4")


class BasecampOAuth:
    """Launchpad authorization-code exchange.

    Args:
        client_id: Basecamp integration client id.
        client_secret: Basecamp integration client secret.
        redirect_uri: Callback URL registered with the integration.
        launchpad_url: Launchpad root (default https://launchpad.37signals.com).
        user_agent: Identifying User-Agent header.
    """

    SERVICE = "launchpad"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        launchpad_url: str = "https://launchpad.37signals.com",
        user_agent: str = "dealbridge",
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._launchpad_url = launchpad_url.rstrip("/")
        self._headers = {"User-Agent": user_agent}

    @classmethod
    def from_settings(cls, settings: Settings) -> BasecampOAuth | None:
        """Build the helper, or None when the OAuth app is not configured."""
        if not (settings.BASECAMP_CLIENT_ID and settings.BASECAMP_REDIRECT_URI):
            return None
        return cls(
            client_id=settings.BASECAMP_CLIENT_ID,
            client_secret=settings.BASECAMP_CLIENT_SECRET,
            redirect_uri=settings.BASECAMP_REDIRECT_URI,
            launchpad_url=settings.BASECAMP_LAUNCHPAD_URL,
            user_agent=settings.BASECAMP_USER_AGENT,
        )

    def authorization_url(self) -> str:
        query = urlencode(
            {
                "type": "web_server",
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
            }
        )
        return f"{self._launchpad_url}/authorization/new?{query}"

    async def _send(self, method: str, url: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(headers=self._headers) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteError(self.SERVICE, None, str(exc)) from exc
        if not response.is_success:
            logger.warning(
                "basecamp_oauth.request_failed",
                url=url,
                status_code=response.status_code,
            )
            raise RemoteError(self.SERVICE, response.status_code, response.text[:200])
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(self.SERVICE, response.status_code, f"invalid JSON body: {exc}") from exc

    async def exchange_code(self, code: str) -> dict:
        """Trade an authorization code for access and refresh tokens.

        Returns:
            Launchpad token payload (access_token, refresh_token, expires_in).
        """
        data = await self._send(
            "POST",
            f"{self._launchpad_url}/authorization/token",
            params={
                "type": "web_server",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
                "code": code,
            },
        )
        logger.info("basecamp_oauth.token_exchanged", expires_in=data.get("expires_in"))
        return data

    async def fetch_accounts(self, access_token: str) -> list[dict]:
        """Return the Basecamp 3/4 accounts reachable with the token."""
        data = await self._send(
            "GET",
            f"{self._launchpad_url}/authorization.json",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return [
            {"id": str(a.get("id")), "name": a.get("name"), "href": a.get("href")}
            for a in data.get("accounts", [])
            if a.get("product") in BASECAMP_PRODUCTS
        ]
