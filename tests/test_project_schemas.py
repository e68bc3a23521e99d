"""Unit tests for deal event and project record schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.dealbridge.projects.schemas import (
    BatchResult,
    DealDetails,
    DealEvent,
    EventOutcome,
    EventResult,
    ProjectRecord,
    ProjectStatus,
    coerce_amount,
)


class TestCoerceAmount:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("15000", 15000.0),
            ("15000.50", 15000.5),
            (2500, 2500.0),
            (0, 0.0),
        ],
    )
    def test_valid_amounts_pass_through(self, raw, expected):
        assert coerce_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "-10", -5, "nan", "inf", float("inf"), True, [1]])
    def test_invalid_amounts_become_zero(self, raw):
        assert coerce_amount(raw) == 0.0


class TestDealEvent:
    def test_parses_hubspot_envelope(self):
        event = DealEvent.model_validate(
            {
                "eventId": 1,
                "portalId": 99,
                "objectId": 111,
                "propertyName": "dealstage",
                "propertyValue": "closedwon",
                "subscriptionType": "deal.propertyChange",
            }
        )

        assert event.deal_id == "111"
        assert event.is_closed_won is True
        assert event.subscription_type == "deal.propertyChange"

    def test_other_stage_is_not_closed_won(self):
        event = DealEvent(objectId="222", propertyName="dealstage", propertyValue="qualifiedtobuy")
        assert event.is_closed_won is False

    def test_closedwon_on_other_property_is_not_closed_won(self):
        event = DealEvent(objectId="222", propertyName="hs_status", propertyValue="closedwon")
        assert event.is_closed_won is False

    def test_missing_object_id_is_unknown(self):
        assert DealEvent().deal_id == "unknown"
        assert DealEvent(objectId="").deal_id == "unknown"


class TestDealDetails:
    def test_amount_is_coerced(self):
        assert DealDetails(deal_id="1", amount="12.5").amount == 12.5
        assert DealDetails(deal_id="1", amount="n/a").amount == 0.0


class TestProjectRecord:
    def test_serializes_with_camel_case_keys(self):
        record = ProjectRecord(
            id="42",
            name="Website Redesign",
            deal_id="111",
            amount=15000,
            created_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        )

        data = record.to_json_dict()

        assert data == {
            "id": "42",
            "name": "Website Redesign",
            "dealId": "111",
            "amount": 15000.0,
            "source": "hubspot",
            "createdAt": "2026-03-01T12:00:00Z",
            "status": "created",
        }

    def test_round_trips_from_stored_json(self):
        record = ProjectRecord.model_validate(
            {
                "id": 1700000000000,
                "name": "Acme Corp - Website Redesign",
                "dealId": 12345,
                "amount": "bad",
                "createdAt": "2026-03-01T12:00:00.000Z",
                "status": "created",
            }
        )

        assert record.id == "1700000000000"
        assert record.deal_id == "12345"
        assert record.amount == 0.0
        assert record.status == ProjectStatus.CREATED

    def test_is_immutable(self):
        record = ProjectRecord(id="1", deal_id="111")
        with pytest.raises(Exception):
            record.amount = 10  # type: ignore[misc]


def test_batch_result_counts_outcomes():
    batch = BatchResult(
        batch_id="b-1",
        results=[
            EventResult(deal_id="1", outcome=EventOutcome.CREATED, project_id="p"),
            EventResult(deal_id="2", outcome=EventOutcome.IGNORED),
            EventResult(deal_id="3", outcome=EventOutcome.IGNORED),
        ],
    )

    assert batch.count(EventOutcome.CREATED) == 1
    assert batch.count(EventOutcome.IGNORED) == 2
    assert batch.count(EventOutcome.FAILED) == 0
