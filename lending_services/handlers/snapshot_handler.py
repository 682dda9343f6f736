"""
AnalyticsSnapshotHandler -- incremental snapshot recompute on the event bus.

Subscribed to every known event type.  Each event is ingested into the
ledger and the snapshot variants its type maps to are recomputed, inside the
handler's own unit of work so a failure rolls back only this handler's
writes.
"""

from collections.abc import Callable

from sqlalchemy.orm import Session

from lending_kernel.db.engine import unit_of_work
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import DomainEvent
from lending_kernel.services.snapshot_service import SnapshotAggregator


class AnalyticsSnapshotHandler:
    HANDLER_NAME = "AnalyticsSnapshotHandler"
    # Ahead of fund alerts (100), after payment alerts and audit (5, 10)
    PRIORITY = 50

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def __call__(self, event: DomainEvent) -> None:
        with unit_of_work(self._session_factory) as session:
            SnapshotAggregator(session, self._clock).compute_from_event(event)
