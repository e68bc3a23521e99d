"""Read endpoint for created projects.

By default GET /projects serves the local store. With
PROJECTS_SOURCE=hubspot and a HubSpot token, it instead lists the deals
currently closed-won in HubSpot, shaped like project records. That view is
read-through only: nothing is written back to the store. If HubSpot
fails, the store is served instead.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ValidationError

from src.dealbridge.api.deps import get_app_settings, get_hubspot, get_store
from src.dealbridge.config import ProjectsSource, Settings
from src.dealbridge.crm.hubspot import HubSpotClient
from src.dealbridge.errors import RemoteError
from src.dealbridge.projects.schemas import DEFAULT_PROJECT_NAME, DealDetails, ProjectRecord
from src.dealbridge.projects.store import ProjectStore

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["projects"])


class ProjectListResponse(BaseModel):
    total: int
    projects: list[dict]


def record_from_deal(deal: DealDetails) -> ProjectRecord:
    """Project a HubSpot closed-won deal into ProjectRecord shape."""
    fields = {
        "id": deal.deal_id,
        "name": deal.name or DEFAULT_PROJECT_NAME,
        "dealId": deal.deal_id,
        "amount": deal.amount,
    }
    timestamp = deal.close_date or deal.created_at
    if timestamp:
        try:
            return ProjectRecord.model_validate({**fields, "createdAt": timestamp})
        except ValidationError:
            logger.debug("projects.unparseable_deal_date", deal_id=deal.deal_id, value=timestamp)
    return ProjectRecord.model_validate({**fields, "createdAt": datetime.now(timezone.utc)})


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    settings: Settings = Depends(get_app_settings),
    store: ProjectStore = Depends(get_store),
    hubspot: HubSpotClient | None = Depends(get_hubspot),
) -> ProjectListResponse:
    """List created projects from the store or, when configured, HubSpot."""
    records: list[ProjectRecord] | None = None

    if settings.PROJECTS_SOURCE == ProjectsSource.hubspot and hubspot is not None:
        try:
            deals = await hubspot.list_closed_won_deals()
            records = [record_from_deal(d) for d in deals]
        except RemoteError as exc:
            logger.warning(
                "projects.hubspot_view_failed",
                status_code=exc.status_code,
                error=exc.message,
            )

    if records is None:
        records = await store.load()

    return ProjectListResponse(
        total=len(records),
        projects=[r.to_json_dict() for r in records],
    )
