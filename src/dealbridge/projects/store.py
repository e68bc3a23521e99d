"""JSON file store for created project records.

The whole store is one JSON array rewritten on every append. Reads and
writes run in a worker thread via asyncio.to_thread so the event loop is
never blocked on disk.

Both load and save fail soft: errors are logged and swallowed, so a
corrupt or unwritable file never stops the webhook from being processed.
The price is that a corrupt file reads as empty and a failed write is
invisible to the caller.

There is no lock around append (load, push, save). Two stores pointed at
the same file, or two processes, can overwrite each other's records.
Inside one app all writes go through the ReconciliationQueue worker.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from src.dealbridge.errors import StorageError
from src.dealbridge.projects.schemas import ProjectRecord

logger = structlog.get_logger(__name__)


class ProjectStore:
    """Flat-file persistence for ProjectRecord objects.

    Args:
        path: Location of the JSON document. Parent directories are
            created on first save.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ── Sync helpers (run in a thread) ──────────────────────────────────

    def _read(self) -> list[ProjectRecord]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"cannot read {self._path}: {exc}") from exc
        if not isinstance(raw, list):
            raise StorageError(f"{self._path} does not hold a JSON array")
        try:
            return [ProjectRecord.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise StorageError(f"invalid project record in {self._path}: {exc}") from exc

    def _write(self, records: list[ProjectRecord]) -> None:
        payload = json.dumps([r.to_json_dict() for r in records], indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"cannot write {self._path}: {exc}") from exc

    # ── Public API ──────────────────────────────────────────────────────

    async def load(self) -> list[ProjectRecord]:
        """Return all stored records, or an empty list if the file is unusable."""
        try:
            return await asyncio.to_thread(self._read)
        except StorageError as exc:
            logger.error("store.load_failed", path=str(self._path), error=str(exc))
            return []

    async def save(self, records: list[ProjectRecord]) -> None:
        """Rewrite the whole document. Failures are logged only."""
        try:
            await asyncio.to_thread(self._write, list(records))
        except StorageError as exc:
            logger.error(
                "store.save_failed",
                path=str(self._path),
                record_count=len(records),
                error=str(exc),
            )

    async def append(self, record: ProjectRecord) -> None:
        """Load, push and save. Not atomic."""
        records = await self.load()
        records.append(record)
        await self.save(records)
        logger.info(
            "store.record_appended",
            project_id=record.id,
            deal_id=record.deal_id,
            total=len(records),
        )

    async def find_by_deal_id(self, deal_id: str) -> ProjectRecord | None:
        for record in await self.load():
            if record.deal_id == deal_id:
                return record
        return None
