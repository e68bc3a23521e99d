"""Project host strategies: where a project gets created for a won deal.

Two interchangeable implementations of ProjectHost:
- BasecampProjectHost: creates a real project through the Basecamp 3/4 API
- LocalMockProjectHost: no network, returns a timestamp-derived id

build_project_host() picks one once at startup from configuration, so the
workflow never branches on whether credentials are present.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

import httpx
import structlog

from src.dealbridge.config import Settings
from src.dealbridge.errors import RemoteError

logger = structlog.get_logger(__name__)


class ProjectHost(ABC):
    """Abstract interface for project creation on an external host."""

    mode: str = "abstract"

    @abstractmethod
    async def create_project(self, name: str, description: str) -> str:
        """Create a project, return the host-assigned id as a string."""
        ...


class BasecampProjectHost(ProjectHost):
    """Creates projects through the Basecamp API.

    The bearer token comes from the OAuth helper (see
    src.dealbridge.auth.basecamp_oauth); the account id is the numeric
    Basecamp account the projects belong to.

    Args:
        access_token: OAuth bearer token.
        account_id: Basecamp account id.
        base_url: API root (default https://3.basecampapi.com).
        user_agent: Basecamp rejects requests without an identifying
            User-Agent ("App name (contact)").
    """

    mode = "basecamp"
    SERVICE = "basecamp"

    def __init__(
        self,
        access_token: str,
        account_id: str,
        base_url: str = "https://3.basecampapi.com",
        user_agent: str = "dealbridge",
    ) -> None:
        self._projects_url = f"{base_url.rstrip('/')}/{account_id}/projects.json"
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self._headers)

    async def create_project(self, name: str, description: str) -> str:
        """POST /{account_id}/projects.json and return the new project id.

        Raises:
            RemoteError: Non-2xx response, transport failure, or a body
                without a project id.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self._projects_url,
                    json={"name": name, "description": description},
                )
        except httpx.HTTPError as exc:
            raise RemoteError(self.SERVICE, None, str(exc)) from exc

        if not response.is_success:
            logger.warning(
                "basecamp.create_project_failed",
                status_code=response.status_code,
                project_name=name,
            )
            raise RemoteError(self.SERVICE, response.status_code, response.text[:200])

        try:
            project_id = str(response.json()["id"])
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoteError(
                self.SERVICE, response.status_code, f"unexpected response body: {exc!r}"
            ) from exc

        logger.info("basecamp.project_created", project_id=project_id, project_name=name)
        return project_id


class LocalMockProjectHost(ProjectHost):
    """Stand-in used when Basecamp credentials are absent."""

    mode = "mock"

    async def create_project(self, name: str, description: str) -> str:
        project_id = str(time.time_ns() // 1_000_000)
        logger.info("mock_host.project_created", project_id=project_id, project_name=name)
        return project_id


def build_project_host(settings: Settings) -> ProjectHost:
    """Select the project host strategy from configuration."""
    if settings.basecamp_configured:
        return BasecampProjectHost(
            access_token=settings.BASECAMP_ACCESS_TOKEN,
            account_id=settings.BASECAMP_ACCOUNT_ID,
            base_url=settings.BASECAMP_API_BASE_URL,
            user_agent=settings.BASECAMP_USER_AGENT,
        )
    logger.info("project_host.mock_mode", reason="basecamp credentials not configured")
    return LocalMockProjectHost()
