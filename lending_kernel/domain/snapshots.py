"""
Snapshot variants and the event-type trigger table.

``SNAPSHOT_TRIGGERS`` decides which snapshot variants an incoming event
recomputes on the incremental path.  Event types absent from the table are
ingested for audit but recompute nothing.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from lending_kernel.domain.events import EventType, known_event_type


class SnapshotVariant(str, Enum):
    FUND = "fund"
    LOAN = "loan"
    PAYMENT = "payment"
    INSPECTION = "inspection"


_FUND_ONLY = (SnapshotVariant.FUND,)

SNAPSHOT_TRIGGERS: Mapping[EventType, tuple[SnapshotVariant, ...]] = MappingProxyType({
    EventType.LOAN_FUNDED: (SnapshotVariant.LOAN, SnapshotVariant.FUND),
    EventType.PAYMENT_RECEIVED: (SnapshotVariant.PAYMENT, SnapshotVariant.LOAN),
    EventType.INSPECTION_COMPLETED: (SnapshotVariant.INSPECTION,),
    EventType.FUND_CREATED: _FUND_ONLY,
    EventType.FUND_COMMITMENT_ACTIVATED: _FUND_ONLY,
    EventType.FUND_CAPITAL_ALLOCATED: _FUND_ONLY,
    EventType.FUND_CAPITAL_RETURNED: _FUND_ONLY,
    EventType.FUND_DISTRIBUTION_POSTED: _FUND_ONLY,
    EventType.FUND_CAPITAL_EVENT_RECORDED: _FUND_ONLY,
})


def variants_for(event_type: str | EventType) -> tuple[SnapshotVariant, ...]:
    """Snapshot variants to recompute for an event type (empty when none)."""
    known = known_event_type(event_type)
    if known is None:
        return ()
    return SNAPSHOT_TRIGGERS.get(known, ())
