"""Pydantic schemas for deal events, project records and reconciliation results.

Defines:
- Inbound: DealEvent (one HubSpot webhook event, untrusted)
- CRM: DealDetails (deal properties read back from HubSpot)
- Persisted: ProjectRecord (camelCase on disk, immutable once written)
- Results: EventOutcome, EventResult, BatchResult
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROJECT_NAME = "New Project"
PROJECT_SOURCE = "hubspot"
UNKNOWN_DEAL_ID = "unknown"

CLOSED_WON_PROPERTY = "dealstage"
CLOSED_WON_VALUE = "closedwon"


def coerce_amount(value: Any) -> float:
    """Coerce an upstream amount to a finite non-negative float.

    HubSpot sends amounts as strings ("15000.50"), sometimes empty. Anything
    that does not parse, is negative, NaN or infinite becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


# ── Enums ───────────────────────────────────────────────────────────────────


class ProjectStatus(str, Enum):
    """Lifecycle status of a persisted project record."""

    CREATED = "created"


class EventOutcome(str, Enum):
    """Terminal state of a single deal event after reconciliation."""

    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    CREATED = "created"
    FAILED = "failed"


# ── Inbound ─────────────────────────────────────────────────────────────────


class DealEvent(BaseModel):
    """One HubSpot deal webhook event.

    Only the four fields below matter; the rest of the HubSpot envelope
    (eventId, portalId, occurredAt, ...) is dropped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    object_id: str | int | None = Field(default=None, alias="objectId")
    property_name: str | None = Field(default=None, alias="propertyName")
    property_value: str | None = Field(default=None, alias="propertyValue")
    subscription_type: str | None = Field(default=None, alias="subscriptionType")

    @property
    def deal_id(self) -> str:
        if self.object_id is None or self.object_id == "":
            return UNKNOWN_DEAL_ID
        return str(self.object_id)

    @property
    def is_closed_won(self) -> bool:
        return (
            self.property_name == CLOSED_WON_PROPERTY
            and self.property_value == CLOSED_WON_VALUE
        )


# ── CRM ─────────────────────────────────────────────────────────────────────


class DealDetails(BaseModel):
    """Deal properties fetched from HubSpot."""

    deal_id: str
    name: str | None = None
    amount: float = 0.0
    stage: str | None = None
    close_date: str | None = None
    created_at: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        return coerce_amount(value)


# ── Persisted ───────────────────────────────────────────────────────────────


class ProjectRecord(BaseModel):
    """A project created for a won deal. Serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str = DEFAULT_PROJECT_NAME
    deal_id: str = Field(alias="dealId")
    amount: float = 0.0
    source: str = PROJECT_SOURCE
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    status: ProjectStatus = ProjectStatus.CREATED

    @field_validator("id", "deal_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        # Older stores wrote numeric ids
        return str(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        return coerce_amount(value)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ── Results ─────────────────────────────────────────────────────────────────


class EventResult(BaseModel):
    """Outcome of reconciling one deal event."""

    deal_id: str
    outcome: EventOutcome
    project_id: str | None = None
    error: str | None = None


class BatchResult(BaseModel):
    """Outcome of reconciling every event of one webhook call."""

    batch_id: str
    results: list[EventResult] = Field(default_factory=list)

    def count(self, outcome: EventOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)
