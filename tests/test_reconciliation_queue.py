"""Tests for the background reconciliation queue.

Submission and processing are observed separately: submit() returns a
ticket immediately, and the ticket's future resolves only after the
worker has run the batch.
"""

from __future__ import annotations

import asyncio
import gc
from unittest.mock import AsyncMock

import pytest

from src.dealbridge.events.queue import ReconciliationQueue
from src.dealbridge.projects.host import LocalMockProjectHost
from src.dealbridge.projects.schemas import BatchResult, DealEvent, EventOutcome
from src.dealbridge.projects.workflow import ReconciliationWorkflow


def _won(object_id: str) -> DealEvent:
    return DealEvent(objectId=object_id, propertyName="dealstage", propertyValue="closedwon")


class GatedHost(LocalMockProjectHost):
    """Mock host that blocks project creation until released."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.calls: list[str] = []

    async def create_project(self, name: str, description: str) -> str:
        await self.gate.wait()
        self.calls.append(name)
        return f"p-{len(self.calls)}"


class SlowHost(LocalMockProjectHost):
    """Mock host whose project creation takes a little while."""

    def __init__(self) -> None:
        self.created = 0

    async def create_project(self, name: str, description: str) -> str:
        await asyncio.sleep(0.05)
        self.created += 1
        return f"slow-{self.created}"


@pytest.mark.asyncio
async def test_submit_returns_before_processing(store):
    host = GatedHost()
    queue = ReconciliationQueue(ReconciliationWorkflow(store, host))
    queue.start()
    try:
        ticket = queue.submit([_won("1")])

        assert ticket.event_count == 1
        assert ticket.done is False
        await asyncio.sleep(0)
        assert await store.load() == []

        host.gate.set()
        result = await asyncio.wait_for(ticket.result, timeout=5)

        assert isinstance(result, BatchResult)
        assert result.batch_id == ticket.batch_id
        assert result.results[0].outcome == EventOutcome.CREATED
        assert [r.deal_id for r in await store.load()] == ["1"]
    finally:
        await queue.stop()


@pytest.mark.asyncio
async def test_batches_run_one_at_a_time_in_order(store):
    queue = ReconciliationQueue(ReconciliationWorkflow(store, LocalMockProjectHost()))
    queue.start()
    try:
        tickets = [queue.submit([_won(str(i))]) for i in range(5)]
        # Same deal from two concurrent webhook calls must not be created twice
        tickets.append(queue.submit([_won("0")]))
        await asyncio.wait_for(queue.join(), timeout=5)
    finally:
        await queue.stop()

    assert all(t.done for t in tickets)
    assert tickets[-1].result.result().results[0].outcome == EventOutcome.DUPLICATE
    assert [r.deal_id for r in await store.load()] == ["0", "1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_worker_survives_a_failing_batch(store):
    workflow = ReconciliationWorkflow(store, LocalMockProjectHost())
    workflow.process_batch = AsyncMock(
        side_effect=[RuntimeError("boom"), BatchResult(batch_id="second")]
    )

    queue = ReconciliationQueue(workflow)
    queue.start()
    try:
        failing = queue.submit([_won("1")])
        with pytest.raises(RuntimeError, match="boom"):
            await asyncio.wait_for(failing.result, timeout=5)

        assert queue.running is True
        second = queue.submit([_won("2")])
        result = await asyncio.wait_for(second.result, timeout=5)
        assert result.batch_id == "second"
    finally:
        await queue.stop()


@pytest.mark.asyncio
async def test_submit_without_worker_stays_pending(store):
    queue = ReconciliationQueue(ReconciliationWorkflow(store, LocalMockProjectHost()))

    ticket = queue.submit([_won("1")])
    await asyncio.sleep(0)

    assert queue.pending == 1
    assert ticket.done is False

    queue.start()
    await asyncio.wait_for(queue.join(), timeout=5)
    await queue.stop()

    assert ticket.done is True


@pytest.mark.asyncio
async def test_stop_is_idempotent(store):
    queue = ReconciliationQueue(ReconciliationWorkflow(store, LocalMockProjectHost()))
    queue.start()
    queue.start()

    await queue.stop()
    await queue.stop()

    assert queue.running is False


@pytest.mark.asyncio
async def test_stop_finishes_acknowledged_batches(store):
    queue = ReconciliationQueue(ReconciliationWorkflow(store, SlowHost()))
    queue.start()

    tickets = [queue.submit([_won("1")]), queue.submit([_won("2")])]
    await queue.stop()

    assert queue.running is False
    assert all(t.done and not t.result.cancelled() for t in tickets)
    assert [t.result.result().results[0].outcome for t in tickets] == [
        EventOutcome.CREATED,
        EventOutcome.CREATED,
    ]
    assert [r.deal_id for r in await store.load()] == ["1", "2"]


@pytest.mark.asyncio
async def test_stop_cancels_what_is_left_after_drain_timeout(store):
    host = GatedHost()
    queue = ReconciliationQueue(ReconciliationWorkflow(store, host))
    queue.start()

    in_flight = queue.submit([_won("1")])
    waiting = queue.submit([_won("2")])
    await queue.stop(drain_timeout=0.05)

    assert in_flight.result.cancelled()
    assert waiting.result.cancelled()
    assert queue.pending == 0
    assert queue.running is False
    assert host.calls == []
    assert await store.load() == []


@pytest.mark.asyncio
async def test_failed_batch_does_not_warn_when_ticket_is_discarded(store):
    async def explode(events, batch_id):
        raise RuntimeError("boom")

    workflow = ReconciliationWorkflow(store, LocalMockProjectHost())
    workflow.process_batch = explode

    loop = asyncio.get_running_loop()
    previous_handler = loop.get_exception_handler()
    reported: list[dict] = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        queue = ReconciliationQueue(workflow)
        queue.start()
        ticket = queue.submit([_won("1")])
        await asyncio.wait_for(queue.join(), timeout=5)
        await queue.stop()

        assert ticket.done
        del ticket
        gc.collect()
    finally:
        loop.set_exception_handler(previous_handler)

    assert reported == []
