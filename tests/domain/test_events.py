"""
Tests for the DomainEvent envelope.

Covers:
- Construction through DomainEvent.create
- Deep immutability of the payload
- Known vs. unknown event types
- Occurrence date in UTC
"""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from lending_kernel.domain.events import (
    DomainEvent,
    EventMetadata,
    EventType,
    known_event_type,
    thaw,
)


class TestCreate:
    def test_create_assigns_id_and_timestamp(self):
        event = DomainEvent.create(EventType.LOAN_FUNDED, "loan", "loan-1")

        assert isinstance(event.event_id, UUID)
        assert event.occurred_at.tzinfo is not None
        assert event.event_type == "Loan.Funded"
        assert event.event_version == "1.0"

    def test_explicit_event_id_is_kept(self):
        event_id = uuid4()

        event = DomainEvent.create("Fund.Created", "fund", "f-1", event_id=event_id)

        assert event.event_id == event_id

    def test_aggregate_id_is_stringified(self):
        aggregate = uuid4()

        event = DomainEvent.create(EventType.FUND_CREATED, "fund", aggregate)

        assert event.aggregate_id == str(aggregate)

    def test_metadata_defaults_empty(self):
        event = DomainEvent.create(EventType.FUND_CREATED, "fund", "f-1")

        assert event.metadata == EventMetadata()
        assert event.metadata.as_dict() == {}

    def test_explicit_none_metadata_becomes_empty(self):
        event = DomainEvent(
            event_id=uuid4(),
            event_type="Payment.Received",
            aggregate_type="payment",
            aggregate_id="p-1",
            payload={},
            occurred_at=datetime(2024, 6, 30, tzinfo=timezone.utc),
            metadata=None,
        )

        assert event.metadata == EventMetadata()

    def test_metadata_as_dict_drops_none(self):
        meta = EventMetadata(correlation_id="c-1", organization_id="org")

        assert meta.as_dict() == {"correlation_id": "c-1", "organization_id": "org"}


class TestImmutability:
    def test_event_is_frozen(self):
        event = DomainEvent.create(EventType.FUND_CREATED, "fund", "f-1")

        with pytest.raises(FrozenInstanceError):
            event.event_type = "Fund.Closed"

    def test_payload_is_read_only(self):
        event = DomainEvent.create(
            EventType.PAYMENT_LATE, "payment", "p-1", payload={"daysLate": 5},
        )

        with pytest.raises(TypeError):
            event.payload["daysLate"] = 6

    def test_nested_payload_is_frozen(self):
        event = DomainEvent.create(
            EventType.LOAN_FUNDED,
            "loan",
            "l-1",
            payload={"borrower": {"name": "A"}, "tranches": [1, 2]},
        )

        with pytest.raises(TypeError):
            event.payload["borrower"]["name"] = "B"
        assert event.payload["tranches"] == (1, 2)

    def test_caller_dict_changes_do_not_leak_in(self):
        source = {"amount": "100"}
        event = DomainEvent.create(EventType.PAYMENT_RECEIVED, "payment", "p-1", payload=source)

        source["amount"] = "999"

        assert event.payload["amount"] == "100"

    def test_thaw_restores_plain_containers(self):
        event = DomainEvent.create(
            EventType.LOAN_FUNDED,
            "loan",
            "l-1",
            payload={"borrower": {"name": "A"}, "tranches": [1, 2]},
        )

        assert thaw(event.payload) == {"borrower": {"name": "A"}, "tranches": [1, 2]}


class TestEventTypes:
    def test_known_type_resolves(self):
        event = DomainEvent.create("Payment.Received", "payment", "p-1")

        assert event.known_type is EventType.PAYMENT_RECEIVED

    def test_unknown_type_is_carried_as_string(self):
        event = DomainEvent.create("Custom.Thing", "custom", "c-1")

        assert event.event_type == "Custom.Thing"
        assert event.known_type is None

    def test_known_event_type_accepts_member(self):
        assert known_event_type(EventType.DRAW_APPROVED) is EventType.DRAW_APPROVED
        assert known_event_type("Nope") is None

    def test_str_is_the_tag(self):
        assert str(EventType.INSPECTION_OVERDUE) == "Inspection.Overdue"


class TestOccurredOn:
    def test_aware_timestamp_converted_to_utc_date(self):
        eastern = timezone(timedelta(hours=-5))
        event = DomainEvent.create(
            EventType.PAYMENT_RECEIVED,
            "payment",
            "p-1",
            occurred_at=datetime(2024, 3, 10, 22, 30, tzinfo=eastern),
        )

        assert event.occurred_on == date(2024, 3, 11)

    def test_naive_timestamp_taken_as_utc(self):
        event = DomainEvent.create(
            EventType.PAYMENT_RECEIVED,
            "payment",
            "p-1",
            occurred_at=datetime(2024, 3, 10, 23, 59),
        )

        assert event.occurred_on == date(2024, 3, 10)
