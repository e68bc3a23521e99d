"""Background processing for webhook batches.

Exports:
    ReconciliationQueue: Single-worker asyncio queue in front of the workflow.
    BatchTicket: Handle returned by submit(), resolves to the BatchResult.
"""

from __future__ import annotations

from src.dealbridge.events.queue import BatchTicket, ReconciliationQueue

__all__ = ["BatchTicket", "ReconciliationQueue"]
