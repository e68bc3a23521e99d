"""In-process queue that runs webhook batches after the HTTP response.

The webhook endpoint acknowledges HubSpot as soon as the body parses, then
hands the batch to ReconciliationQueue.submit(). A single worker task
drains the queue and runs the workflow, one batch at a time. Because there
is only one worker, it is also the only writer of the project store inside
this process.

submit() returns a BatchTicket whose future resolves to the BatchResult,
so callers (mostly tests) can observe "response sent" and "batch
reconciled" as two separate events.

Batches were already acknowledged with 200 when they were queued, so
stop() lets the worker finish what is queued before cancelling it. Only
batches still pending after the drain timeout are dropped.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.dealbridge.projects.schemas import BatchResult, DealEvent
from src.dealbridge.projects.workflow import ReconciliationWorkflow

logger = structlog.get_logger(__name__)

DEFAULT_DRAIN_TIMEOUT = 30.0


@dataclass
class BatchTicket:
    """Handle for a submitted batch.

    ``context`` holds the structlog contextvars of the submitting request
    (request_id), re-bound by the worker so reconciliation logs line up
    with the webhook call that queued them.
    """

    batch_id: str
    source: str
    event_count: int
    result: asyncio.Future[BatchResult] = field(repr=False)
    context: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def done(self) -> bool:
        return self.result.done()


class ReconciliationQueue:
    """Single-worker queue in front of ReconciliationWorkflow.

    Args:
        workflow: Workflow that reconciles each batch.
    """

    def __init__(self, workflow: ReconciliationWorkflow) -> None:
        self._workflow = workflow
        self._queue: asyncio.Queue[tuple[BatchTicket, list[DealEvent]]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Launch the worker task. Must be called from a running event loop."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="reconciliation_worker")
        logger.info("queue.worker_started")

    async def stop(self, drain_timeout: float | None = DEFAULT_DRAIN_TIMEOUT) -> None:
        """Finish queued batches, then cancel the worker.

        Args:
            drain_timeout: Seconds to wait for queued batches before the
                worker is cancelled. None waits indefinitely.

        Tickets of batches that never ran are cancelled.
        """
        if self._worker is None:
            return

        if self.running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "queue.drain_timeout",
                    timeout=drain_timeout,
                    pending=self._queue.qsize(),
                )

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

        dropped = self._cancel_pending()
        logger.info("queue.worker_stopped", dropped=dropped)

    def _cancel_pending(self) -> int:
        dropped = 0
        while not self._queue.empty():
            ticket, _ = self._queue.get_nowait()
            ticket.result.cancel()
            self._queue.task_done()
            dropped += 1
            logger.warning("queue.batch_dropped", batch_id=ticket.batch_id, events=ticket.event_count)
        return dropped

    def submit(self, events: list[DealEvent], source: str = "hubspot") -> BatchTicket:
        """Enqueue a batch without waiting for it to be processed."""
        ticket = BatchTicket(
            batch_id=str(uuid.uuid4()),
            source=source,
            event_count=len(events),
            result=asyncio.get_running_loop().create_future(),
            context=structlog.contextvars.get_contextvars(),
        )
        self._queue.put_nowait((ticket, list(events)))
        logger.info(
            "queue.batch_submitted",
            batch_id=ticket.batch_id,
            source=source,
            events=len(events),
            pending=self._queue.qsize(),
        )
        return ticket

    async def join(self) -> None:
        """Wait until every submitted batch has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            ticket, events = await self._queue.get()
            context = {**ticket.context, "batch_id": ticket.batch_id, "source": ticket.source}
            try:
                with structlog.contextvars.bound_contextvars(**context):
                    result = await self._workflow.process_batch(events, ticket.batch_id)
            except asyncio.CancelledError:
                ticket.result.cancel()
                raise
            except Exception as exc:
                logger.error(
                    "queue.batch_error",
                    batch_id=ticket.batch_id,
                    error=str(exc),
                    exc_info=True,
                )
                ticket.result.set_exception(exc)
                # Logged above; nobody has to await the ticket.
                ticket.result.exception()
            else:
                ticket.result.set_result(result)
            finally:
                self._queue.task_done()
