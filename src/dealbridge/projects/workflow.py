"""Reconciliation workflow: turn closed-won deal events into projects.

Each event walks the same steps and stops at the first terminal outcome:

1. Filter  -- only dealstage -> closedwon transitions continue (else IGNORED)
2. Dedup   -- a stored record for the deal id ends it as DUPLICATE
3. Enrich  -- with a HubSpot client, fetch deal name/amount (error -> FAILED)
4. Create  -- ask the project host strategy for a project (error -> FAILED)
5. Persist -- append the ProjectRecord to the store (CREATED)

Nothing is retried. Errors are contained per event: a failing event never
stops the rest of its batch.

Exports:
    parse_events: Normalize a webhook body into a list of DealEvent.
    ReconciliationWorkflow: Per-event and per-batch orchestration.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from src.dealbridge.core.monitoring import record_event_outcome, record_remote_error
from src.dealbridge.crm.hubspot import HubSpotClient
from src.dealbridge.errors import MalformedEvent, RemoteError
from src.dealbridge.observability.debug_log import DebugLog
from src.dealbridge.projects.host import ProjectHost
from src.dealbridge.projects.schemas import (
    DEFAULT_PROJECT_NAME,
    BatchResult,
    DealEvent,
    EventOutcome,
    EventResult,
    ProjectRecord,
)
from src.dealbridge.projects.store import ProjectStore

logger = structlog.get_logger(__name__)


def parse_events(payload: Any) -> list[DealEvent]:
    """Normalize a webhook body to a list of DealEvent.

    HubSpot delivers a JSON array of events; manual callers often post a
    single object. Both are accepted. Items that are not objects, or whose
    fields have the wrong types, become an empty DealEvent so they are
    reported as ignored instead of failing the batch.

    Raises:
        MalformedEvent: The body is neither an object nor an array.
    """
    if isinstance(payload, dict):
        items: list[Any] = [payload]
    elif isinstance(payload, list):
        items = payload
    else:
        raise MalformedEvent(
            f"expected a deal event object or array, got {type(payload).__name__}"
        )

    events: list[DealEvent] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("workflow.malformed_event", index=index, reason="not an object")
            events.append(DealEvent())
            continue
        try:
            events.append(DealEvent.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "workflow.malformed_event",
                index=index,
                reason=str(exc.errors()[0].get("msg", "invalid")),
            )
            events.append(DealEvent())
    return events


def describe_project(deal_id: str, amount: float) -> str:
    return f"Created from HubSpot deal {deal_id} (closed won). Deal amount: ${amount:,.2f}"


class ReconciliationWorkflow:
    """Runs deal events through filter, dedup, enrich, create and persist.

    Args:
        store: ProjectStore holding created projects.
        project_host: Strategy that creates the external project (real
            Basecamp or local mock), chosen at startup.
        crm: HubSpotClient for enrichment, or None when no token is
            configured (defaults are used instead).
        debug_log: Optional DebugLog receiving one entry per outcome.
    """

    def __init__(
        self,
        store: ProjectStore,
        project_host: ProjectHost,
        crm: HubSpotClient | None = None,
        debug_log: DebugLog | None = None,
    ) -> None:
        self._store = store
        self._host = project_host
        self._crm = crm
        self._debug_log = debug_log

    async def process_event(self, event: DealEvent) -> EventResult:
        """Reconcile one event and return its terminal outcome.

        RemoteError from HubSpot or the project host yields a FAILED result;
        any other exception propagates to the caller.
        """
        deal_id = event.deal_id

        if not event.is_closed_won:
            logger.debug(
                "workflow.event_ignored",
                deal_id=deal_id,
                property_name=event.property_name,
                property_value=event.property_value,
            )
            return EventResult(deal_id=deal_id, outcome=EventOutcome.IGNORED)

        existing = await self._store.find_by_deal_id(deal_id)
        if existing is not None:
            logger.info(
                "workflow.event_duplicate",
                deal_id=deal_id,
                project_id=existing.id,
            )
            return EventResult(
                deal_id=deal_id,
                outcome=EventOutcome.DUPLICATE,
                project_id=existing.id,
            )

        name = DEFAULT_PROJECT_NAME
        amount = 0.0
        if self._crm is not None:
            try:
                deal = await self._crm.fetch_deal(deal_id)
            except RemoteError as exc:
                return self._failed(deal_id, "enrich", exc)
            name = deal.name or DEFAULT_PROJECT_NAME
            amount = deal.amount

        try:
            project_id = await self._host.create_project(name, describe_project(deal_id, amount))
        except RemoteError as exc:
            return self._failed(deal_id, "create", exc)

        record = ProjectRecord(id=project_id, name=name, deal_id=deal_id, amount=amount)
        await self._store.append(record)

        logger.info(
            "workflow.event_created",
            deal_id=deal_id,
            project_id=project_id,
            project_name=name,
            amount=amount,
            host=self._host.mode,
        )
        return EventResult(deal_id=deal_id, outcome=EventOutcome.CREATED, project_id=project_id)

    def _failed(self, deal_id: str, step: str, exc: RemoteError) -> EventResult:
        record_remote_error(exc.service)
        logger.error(
            "workflow.event_failed",
            deal_id=deal_id,
            step=step,
            service=exc.service,
            status_code=exc.status_code,
            error=exc.message,
        )
        return EventResult(deal_id=deal_id, outcome=EventOutcome.FAILED, error=str(exc))

    async def process_batch(self, events: list[DealEvent], batch_id: str) -> BatchResult:
        """Reconcile every event of a batch sequentially.

        Unexpected exceptions are caught per event and reported as FAILED,
        so the remaining events still run.
        """
        batch = BatchResult(batch_id=batch_id)

        for event in events:
            try:
                result = await self.process_event(event)
            except Exception as exc:
                logger.error(
                    "workflow.event_error",
                    batch_id=batch_id,
                    deal_id=event.deal_id,
                    error=str(exc),
                    exc_info=True,
                )
                result = EventResult(
                    deal_id=event.deal_id,
                    outcome=EventOutcome.FAILED,
                    error=str(exc),
                )

            record_event_outcome(result.outcome.value)
            if self._debug_log is not None:
                self._debug_log.record(
                    f"event.{result.outcome.value}",
                    batch_id=batch_id,
                    deal_id=result.deal_id,
                    project_id=result.project_id,
                    error=result.error,
                )
            batch.results.append(result)

        logger.info(
            "workflow.batch_complete",
            batch_id=batch_id,
            events=len(events),
            created=batch.count(EventOutcome.CREATED),
            duplicate=batch.count(EventOutcome.DUPLICATE),
            ignored=batch.count(EventOutcome.IGNORED),
            failed=batch.count(EventOutcome.FAILED),
        )
        return batch
