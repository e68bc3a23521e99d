"""Webhook receiver for CRM deal events, plus a manual test trigger.

HubSpot expects a fast response, so the receiver only parses the body,
queues the batch on ReconciliationQueue and answers 200 right away.
Reconciliation happens afterwards on the queue worker; its outcome is
visible in the logs, /debug/logs and /projects, never in this response.

NOTE: The webhook endpoint does not authenticate callers.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.dealbridge.api.deps import get_debug_log, get_queue
from src.dealbridge.core.monitoring import webhook_batches_total
from src.dealbridge.errors import MalformedEvent
from src.dealbridge.events.queue import BatchTicket, ReconciliationQueue
from src.dealbridge.observability.debug_log import DebugLog
from src.dealbridge.projects.workflow import parse_events

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["webhooks"])

TEST_DEAL_EVENT: dict[str, Any] = {
    "objectId": "12345",
    "propertyName": "dealstage",
    "propertyValue": "closedwon",
    "subscriptionType": "deal.propertyChange",
}


def accept_payload(
    payload: Any,
    source: str,
    queue: ReconciliationQueue,
    debug_log: DebugLog,
) -> BatchTicket:
    """Parse a webhook body and queue it for background reconciliation.

    Raises:
        MalformedEvent: Body is neither an event object nor an array.
    """
    events = parse_events(payload)
    ticket = queue.submit(events, source=source)
    webhook_batches_total.labels(source=source).inc()
    debug_log.record(
        "webhook.received",
        source=source,
        batch_id=ticket.batch_id,
        event_count=len(events),
    )
    return ticket


@router.post("/webhook/{source}/deal-won")
async def receive_deal_won(
    source: str,
    request: Request,
    queue: ReconciliationQueue = Depends(get_queue),
    debug_log: DebugLog = Depends(get_debug_log),
) -> dict:
    """Acknowledge a deal webhook and reconcile it in the background."""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("webhook.invalid_json", source=source)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be JSON",
        )

    try:
        ticket = accept_payload(payload, source, queue, debug_log)
    except MalformedEvent as exc:
        logger.warning("webhook.malformed_payload", source=source, error=str(exc))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    request.state.batch_id = ticket.batch_id
    logger.info(
        "webhook.accepted",
        source=source,
        batch_id=ticket.batch_id,
        events=ticket.event_count,
    )
    return {"received": True}


@router.post("/test/trigger")
async def trigger_test_event(
    request: Request,
    queue: ReconciliationQueue = Depends(get_queue),
    debug_log: DebugLog = Depends(get_debug_log),
) -> dict:
    """Push a canonical closed-won event through the webhook path."""
    ticket = accept_payload(dict(TEST_DEAL_EVENT), "hubspot", queue, debug_log)
    request.state.batch_id = ticket.batch_id
    logger.info("webhook.test_triggered", batch_id=ticket.batch_id)
    return {
        "message": "Test webhook triggered",
        "data": TEST_DEAL_EVENT,
        "batchId": ticket.batch_id,
    }
