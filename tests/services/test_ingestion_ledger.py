"""
Tests for the idempotent event ingestion ledger.

Covers:
- First ingest writes one row with the canonical payload and its hash
- Replays of the same event id are absorbed silently
- Ledger rows cannot be updated
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from lending_kernel.domain.events import DomainEvent, EventMetadata, EventType
from lending_kernel.exceptions import ImmutabilityViolationError
from lending_kernel.services.ingestion_ledger import EventIngestionLedger
from lending_kernel.utils.hashing import hash_payload


@pytest.fixture
def ledger(session, clock):
    return EventIngestionLedger(session, clock)


def _event(event_id=None, payload=None) -> DomainEvent:
    return DomainEvent.create(
        EventType.PAYMENT_RECEIVED,
        "payment",
        "p-1",
        payload=payload if payload is not None else {"amount": Decimal("250.00")},
        occurred_at=datetime(2024, 6, 30, 9, 0, tzinfo=timezone.utc),
        metadata=EventMetadata(correlation_id="corr-1", organization_id="org-test"),
        event_id=event_id,
    )


class TestIngest:
    def test_first_ingest_writes_row(self, ledger, clock):
        event = _event()

        assert ledger.ingest(event) is None

        record = ledger.get(event.event_id)
        assert record is not None
        assert record.event_type == "Payment.Received"
        assert record.aggregate_id == "p-1"
        assert record.payload == {"amount": "250"}
        assert record.payload_hash == hash_payload({"amount": "250"})
        assert record.event_metadata == {"correlation_id": "corr-1", "organization_id": "org-test"}
        assert record.ingested_at.replace(tzinfo=timezone.utc) == clock.now()

    def test_replay_is_silent_noop(self, ledger):
        event = _event()

        ledger.ingest(event)
        ledger.ingest(event)
        ledger.ingest(event)

        assert ledger.count(event.event_id) == 1

    def test_same_id_different_payload_keeps_first(self, ledger):
        event_id = uuid4()

        ledger.ingest(_event(event_id, {"amount": "1"}))
        ledger.ingest(_event(event_id, {"amount": "2"}))

        assert ledger.count() == 1
        assert ledger.get(event_id).payload == {"amount": "1"}

    def test_distinct_events_each_recorded(self, ledger):
        for _ in range(3):
            ledger.ingest(_event())

        assert ledger.count() == 3

    def test_nested_payload_stored_as_plain_json(self, ledger):
        event = _event(payload={"lines": [{"amount": "10"}], "meta": {"source": "api"}})

        ledger.ingest(event)

        assert ledger.get(event.event_id).payload == {
            "lines": [{"amount": "10"}],
            "meta": {"source": "api"},
        }

    def test_unknown_event_type_ingested(self, ledger):
        event = DomainEvent.create("Custom.Thing", "custom", "c-1")

        ledger.ingest(event)

        assert ledger.get(event.event_id).event_type == "Custom.Thing"


class TestImmutability:
    def test_update_rejected(self, ledger, session):
        event = _event()
        ledger.ingest(event)
        record = ledger.get(event.event_id)

        record.event_type = "Payment.Failed"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
