"""
Domain events -- the immutable envelope published on the event bus.

Responsibility:
    Defines ``DomainEvent`` (what publishers emit and handlers consume),
    ``EventMetadata`` (correlation / causation / organization scope) and the
    closed ``EventType`` vocabulary of known event types.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - A DomainEvent is frozen and its payload is deep-frozen, so a handler
      cannot alter what later handlers see.
    - Known types are ``EventType`` members.  Any other non-empty string is
      still a valid event; it is carried as a plain ``str`` and handlers
      that key on ``EventType`` simply never match it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID, uuid4


class EventType(str, Enum):
    """Event types recognised by the analytics engine and its handlers."""

    LOAN_CREATED = "Loan.Created"
    LOAN_FUNDED = "Loan.Funded"
    LOAN_STATUS_CHANGED = "Loan.StatusChanged"
    LOAN_DELINQUENT = "Loan.Delinquent"

    PAYMENT_SCHEDULE_CREATED = "Payment.ScheduleCreated"
    PAYMENT_SCHEDULED = "Payment.Scheduled"
    PAYMENT_RECEIVED = "Payment.Received"
    PAYMENT_PROCESSED = "Payment.Processed"
    PAYMENT_FAILED = "Payment.Failed"
    PAYMENT_LATE = "Payment.Late"
    PAYMENT_RECONCILED = "Payment.Reconciled"

    DRAW_REQUESTED = "Draw.Requested"
    DRAW_APPROVED = "Draw.Approved"
    DRAW_REJECTED = "Draw.Rejected"
    DRAW_DISBURSED = "Draw.Disbursed"
    DRAW_STATUS_CHANGED = "Draw.StatusChanged"

    INSPECTION_SCHEDULED = "Inspection.Scheduled"
    INSPECTION_COMPLETED = "Inspection.Completed"
    INSPECTION_DUE = "Inspection.Due"
    INSPECTION_OVERDUE = "Inspection.Overdue"

    FUND_CREATED = "Fund.Created"
    FUND_UPDATED = "Fund.Updated"
    FUND_CLOSED = "Fund.Closed"
    FUND_COMMITMENT_ADDED = "Fund.CommitmentAdded"
    FUND_COMMITMENT_CANCELLED = "Fund.CommitmentCancelled"
    FUND_COMMITMENT_ACTIVATED = "Fund.CommitmentActivated"
    FUND_CAPITAL_CALLED = "Fund.CapitalCalled"
    FUND_CAPITAL_RECEIVED = "Fund.CapitalReceived"
    FUND_CAPITAL_ALLOCATED = "Fund.CapitalAllocated"
    FUND_CAPITAL_RETURNED = "Fund.CapitalReturned"
    FUND_DISTRIBUTION_MADE = "Fund.DistributionMade"
    FUND_DISTRIBUTION_POSTED = "Fund.DistributionPosted"
    FUND_CAPITAL_EVENT_RECORDED = "Fund.CapitalEventRecorded"

    INVESTOR_CREATED = "Investor.Created"

    def __str__(self) -> str:
        return self.value


_KNOWN_EVENT_TYPES: dict[str, EventType] = {m.value: m for m in EventType}


def known_event_type(event_type: str | EventType) -> EventType | None:
    """Return the EventType member for a tag, or None when the tag is unknown."""
    if isinstance(event_type, EventType):
        return event_type
    return _KNOWN_EVENT_TYPES.get(event_type)


def _deep_freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _deep_freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_deep_freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Convert a deep-frozen payload back into plain dicts and lists for JSON storage."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class EventMetadata:
    """Tracing and scoping identifiers attached to an event."""

    correlation_id: str | None = None
    causation_id: str | None = None
    organization_id: str | None = None
    actor_id: str | None = None

    def as_dict(self) -> dict[str, str]:
        return {
            k: v
            for k, v in (
                ("correlation_id", self.correlation_id),
                ("causation_id", self.causation_id),
                ("organization_id", self.organization_id),
                ("actor_id", self.actor_id),
            )
            if v is not None
        }


@dataclass(frozen=True)
class DomainEvent:
    """
    Immutable domain event.

    Guarantees:
        - payload is a read-only mapping (nested dicts and lists frozen too).
        - ``event_type`` is kept as the caller supplied it; ``known_type``
          resolves it against ``EventType``.
    """

    event_id: UUID
    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: Mapping[str, Any]
    occurred_at: datetime
    metadata: EventMetadata = field(default_factory=EventMetadata)
    event_version: str = "1.0"

    def __post_init__(self) -> None:
        if isinstance(self.event_type, EventType):
            object.__setattr__(self, "event_type", self.event_type.value)
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", _deep_freeze(self.payload or {}))
        object.__setattr__(self, "aggregate_id", str(self.aggregate_id))
        if self.metadata is None:
            object.__setattr__(self, "metadata", EventMetadata())

    @classmethod
    def create(
        cls,
        event_type: str | EventType,
        aggregate_type: str,
        aggregate_id: Any,
        payload: Mapping[str, Any] | None = None,
        occurred_at: datetime | None = None,
        metadata: EventMetadata | None = None,
        event_id: UUID | None = None,
    ) -> DomainEvent:
        """Build an event with a fresh id; ``occurred_at`` defaults to now (UTC)."""
        return cls(
            event_id=event_id or uuid4(),
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload or {},
            occurred_at=occurred_at or datetime.now(timezone.utc),
            metadata=metadata or EventMetadata(),
        )

    @property
    def known_type(self) -> EventType | None:
        return known_event_type(self.event_type)

    @property
    def occurred_on(self) -> date:
        """UTC calendar date of occurrence (naive timestamps are taken as UTC)."""
        ts = self.occurred_at
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)
        return ts.date()
