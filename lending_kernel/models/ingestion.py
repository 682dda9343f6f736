"""
Module: lending_kernel.models.ingestion
Responsibility: ORM persistence for the event ingestion ledger -- one row per
    domain event the analytics engine has observed.
Architecture position: Kernel > Models.  May import from db/ and exceptions.py only.

Invariants enforced:
    - event_id is UNIQUE (uq_event_ingest_event_id); replays are absorbed by
      INSERT ... ON CONFLICT DO NOTHING.
    - Rows are append-only: the ORM before_update listener rejects any UPDATE.

Failure modes:
    - ImmutabilityViolationError on any ORM UPDATE of an existing row.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import Base, UUIDString
from lending_kernel.exceptions import ImmutabilityViolationError


class EventIngestRecord(Base):
    """
    Append-only record of an observed domain event.

    Guarantees:
        - At most one row per event_id.
        - payload_hash is the SHA-256 of the canonical JSON payload at
          ingestion time.
    """

    __tablename__ = "event_ingest"

    __table_args__ = (
        UniqueConstraint("event_id", name="uq_event_ingest_event_id"),
        Index("idx_event_ingest_type_occurred", "event_type", "occurred_at"),
        Index("idx_event_ingest_aggregate", "aggregate_id"),
    )

    event_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    event_type: Mapped[str] = mapped_column(String(100), nullable=False)

    aggregate_type: Mapped[str] = mapped_column(String(100), nullable=False)

    aggregate_id: Mapped[str] = mapped_column(String(100), nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Correlation / causation / organization ids carried by the event
    event_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    event_version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ingested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<EventIngestRecord {self.event_type}:{self.event_id}>"


@event.listens_for(EventIngestRecord, "before_update")
def prevent_ingest_record_update(mapper, connection, target):
    """Ingestion records are immutable once written."""
    raise ImmutabilityViolationError(
        entity_type="EventIngestRecord",
        entity_id=str(target.event_id),
        reason="ingestion records are append-only",
    )
