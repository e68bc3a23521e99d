"""Async HTTP client for the HubSpot CRM v3 deals API.

Provides HubSpotClient with two read operations: fetch one deal's
properties for project enrichment, and search closed-won deals for the
live projects view. Calls are not retried; any non-2xx status or
transport failure is raised as RemoteError.
"""

from __future__ import annotations

import httpx
import structlog

from src.dealbridge.errors import RemoteError
from src.dealbridge.projects.schemas import CLOSED_WON_VALUE, DealDetails

logger = structlog.get_logger(__name__)

DEAL_PROPERTIES = ["dealname", "amount", "dealstage", "closedate", "createdate"]


def _deal_from_payload(data: dict) -> DealDetails:
    """Map a HubSpot deal object ({"id", "properties": {...}}) to DealDetails."""
    properties = data.get("properties") or {}
    return DealDetails(
        deal_id=str(data.get("id", "")),
        name=properties.get("dealname") or None,
        amount=properties.get("amount"),
        stage=properties.get("dealstage") or None,
        close_date=properties.get("closedate") or None,
        created_at=properties.get("createdate") or None,
    )


class HubSpotClient:
    """Async client for HubSpot deal reads.

    Only constructed when a private-app token is configured; without one
    the workflow skips enrichment altogether.

    Args:
        access_token: HubSpot private app access token.
        base_url: API root (default https://api.hubapi.com).
    """

    SERVICE = "hubspot"

    def __init__(self, access_token: str, base_url: str = "https://api.hubapi.com") -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client with auth headers."""
        return httpx.AsyncClient(headers=self._headers)

    def _json(self, response: httpx.Response, operation: str) -> dict:
        """Return the JSON object body, or raise RemoteError."""
        if not response.is_success:
            logger.warning(
                "hubspot.request_failed",
                operation=operation,
                status_code=response.status_code,
            )
            raise RemoteError(self.SERVICE, response.status_code, response.text[:200])
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError(self.SERVICE, response.status_code, f"invalid JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise RemoteError(
                self.SERVICE, response.status_code, f"expected a JSON object, got {type(data).__name__}"
            )
        return data

    async def fetch_deal(self, deal_id: str) -> DealDetails:
        """Fetch name, amount, stage and close date of a single deal.

        GET /crm/v3/objects/deals/{deal_id}?properties=...

        Args:
            deal_id: HubSpot deal object id.

        Returns:
            DealDetails with amount already coerced.

        Raises:
            RemoteError: Non-2xx response, transport failure or a
                non-object body.
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._base_url}/crm/v3/objects/deals/{deal_id}",
                    params={"properties": ",".join(DEAL_PROPERTIES)},
                )
        except httpx.HTTPError as exc:
            raise RemoteError(self.SERVICE, None, str(exc)) from exc

        deal = _deal_from_payload(self._json(response, "fetch_deal"))
        logger.info(
            "hubspot.deal_fetched",
            deal_id=deal_id,
            stage=deal.stage,
        )
        return deal

    async def list_closed_won_deals(self, limit: int = 100) -> list[DealDetails]:
        """Search for deals currently in the closed-won stage.

        POST /crm/v3/objects/deals/search filtered on dealstage.

        Args:
            limit: Maximum number of deals to return (HubSpot caps at 100).

        Returns:
            List of DealDetails, newest first as ordered by HubSpot.
        """
        body = {
            "filterGroups": [
                {
                    "filters": [
                        {
                            "propertyName": "dealstage",
                            "operator": "EQ",
                            "value": CLOSED_WON_VALUE,
                        }
                    ]
                }
            ],
            "properties": DEAL_PROPERTIES,
            "sorts": [{"propertyName": "closedate", "direction": "DESCENDING"}],
            "limit": min(limit, 100),
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._base_url}/crm/v3/objects/deals/search",
                    json=body,
                )
        except httpx.HTTPError as exc:
            raise RemoteError(self.SERVICE, None, str(exc)) from exc

        results = self._json(response, "list_closed_won_deals").get("results") or []
        deals = [_deal_from_payload(item) for item in results if isinstance(item, dict)]
        logger.info("hubspot.closed_won_listed", count=len(deals))
        return deals
