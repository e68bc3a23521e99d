"""Unit tests for the JSON file project store.

Covers fail-soft load/save, append ordering, the on-disk camelCase
format, and the known lost-update race between two writers on one file.
"""

from __future__ import annotations

import json

import pytest
from structlog.testing import capture_logs

from src.dealbridge.projects.schemas import ProjectRecord
from src.dealbridge.projects.store import ProjectStore


def _record(deal_id: str, project_id: str | None = None) -> ProjectRecord:
    return ProjectRecord(id=project_id or f"p-{deal_id}", deal_id=deal_id, name=f"Deal {deal_id}")


class TestLoad:
    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, tmp_path):
        store = ProjectStore(tmp_path / "nope.json")
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_corrupt_json_loads_empty(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text("{not json", encoding="utf-8")

        assert await ProjectStore(path).load() == []

    @pytest.mark.asyncio
    async def test_non_array_document_loads_empty(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({"projects": []}), encoding="utf-8")

        assert await ProjectStore(path).load() == []

    @pytest.mark.asyncio
    async def test_invalid_record_loads_empty(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps([{"name": "no ids"}]), encoding="utf-8")

        with capture_logs() as logs:
            assert await ProjectStore(path).load() == []

        assert logs[0]["event"] == "store.load_failed"

    @pytest.mark.asyncio
    async def test_reads_records_written_by_older_versions(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": 1700000000000,
                        "name": "Acme Corp - Website Redesign",
                        "dealId": "12345",
                        "amount": 15000,
                        "createdAt": "2026-01-05T10:00:00.000Z",
                        "status": "created",
                    }
                ]
            ),
            encoding="utf-8",
        )

        records = await ProjectStore(path).load()

        assert len(records) == 1
        assert records[0].id == "1700000000000"
        assert records[0].source == "hubspot"


class TestSaveAndAppend:
    @pytest.mark.asyncio
    async def test_append_preserves_order(self, store):
        await store.append(_record("1"))
        await store.append(_record("2"))
        await store.append(_record("3"))

        records = await store.load()
        assert [r.deal_id for r in records] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_file_holds_camel_case_array(self, store):
        await store.append(_record("111", project_id="42"))

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert isinstance(data, list)
        assert data[0]["dealId"] == "111"
        assert data[0]["id"] == "42"
        assert set(data[0]) == {"id", "name", "dealId", "amount", "source", "createdAt", "status"}

    @pytest.mark.asyncio
    async def test_save_creates_parent_directories(self, tmp_path):
        store = ProjectStore(tmp_path / "nested" / "dir" / "projects.json")
        await store.save([_record("1")])

        assert store.path.exists()

    @pytest.mark.asyncio
    async def test_save_failure_is_logged_not_raised(self, tmp_path):
        # A directory cannot be written as a file
        store = ProjectStore(tmp_path)

        with capture_logs() as logs:
            await store.save([_record("1")])

        assert any(entry["event"] == "store.save_failed" for entry in logs)

    @pytest.mark.asyncio
    async def test_find_by_deal_id(self, store):
        await store.append(_record("111", project_id="p-1"))

        found = await store.find_by_deal_id("111")

        assert found is not None
        assert found.id == "p-1"
        assert await store.find_by_deal_id("999") is None


class TestKnownRace:
    @pytest.mark.asyncio
    async def test_interleaved_writers_lose_an_update(self, tmp_path):
        """Known limitation: read-modify-write without a lock drops writes.

        Two stores on the same file stand in for two processes. The first
        reads a snapshot, the second appends, then the first writes its
        stale snapshot back and the second record is gone.
        """
        path = tmp_path / "projects.json"
        first = ProjectStore(path)
        second = ProjectStore(path)

        snapshot = await first.load()
        await second.append(_record("b"))
        snapshot.append(_record("a"))
        await first.save(snapshot)

        records = await first.load()
        assert [r.deal_id for r in records] == ["a"]
