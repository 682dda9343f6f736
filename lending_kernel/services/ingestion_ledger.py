"""
EventIngestionLedger -- idempotent record of every event the engine has seen.

Responsibility:
    ``ingest(event)`` writes one EventIngestRecord per event id with a single
    INSERT ... ON CONFLICT (event_id) DO NOTHING.  Replays and concurrent
    deliveries of the same event collapse onto the first row.

Architecture position:
    Kernel > Services.  Called by the SnapshotAggregator before any
    incremental recompute.

Invariants enforced:
    - At most one ledger row per event_id, enforced by the storage layer's
      UNIQUE constraint rather than a read-then-write check.
    - Rows are never updated or deleted.
    - Whether the event was new is not part of the contract: ``ingest``
      returns None in both cases.

Failure modes:
    - SQLAlchemyError from the insert propagates to the caller.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lending_kernel.db.upsert import insert_if_absent
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import DomainEvent, thaw
from lending_kernel.logging_config import get_logger
from lending_kernel.models.ingestion import EventIngestRecord
from lending_kernel.services.base import BaseService
from lending_kernel.utils.hashing import hash_payload, to_json_safe

logger = get_logger("services.ingestion_ledger")


class EventIngestionLedger(BaseService):
    """Insert-if-absent ledger keyed on event id."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def ingest(self, event: DomainEvent) -> None:
        payload = to_json_safe(thaw(event.payload))
        metadata = event.metadata.as_dict()
        inserted = insert_if_absent(
            self.session,
            EventIngestRecord,
            {
                "event_id": event.event_id,
                "event_type": event.event_type,
                "aggregate_type": event.aggregate_type,
                "aggregate_id": event.aggregate_id,
                "payload": payload,
                "payload_hash": hash_payload(payload),
                "event_metadata": metadata or None,
                "event_version": event.event_version,
                "occurred_at": event.occurred_at,
                "ingested_at": self._clock.now(),
            },
            index_elements=("event_id",),
        )
        logger.debug(
            "event_ingested" if inserted else "event_duplicate",
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
            },
        )

    def get(self, event_id: UUID) -> EventIngestRecord | None:
        return self.session.execute(
            select(EventIngestRecord).where(EventIngestRecord.event_id == event_id)
        ).scalar_one_or_none()

    def count(self, event_id: UUID | None = None) -> int:
        stmt = select(func.count(EventIngestRecord.id))
        if event_id is not None:
            stmt = stmt.where(EventIngestRecord.event_id == event_id)
        return self.session.execute(stmt).scalar_one()
