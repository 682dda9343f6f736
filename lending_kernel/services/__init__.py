"""Kernel services: event bus, ingestion ledger, snapshot aggregation."""

from lending_kernel.services.event_bus import (
    DEFAULT_PRIORITY,
    DomainEventBus,
    HandlerOutcome,
    HandlerRegistration,
    HandlerRegistry,
    OutcomeStatus,
    PublishResult,
)
from lending_kernel.services.ingestion_ledger import EventIngestionLedger
from lending_kernel.services.processing_log import ProcessingLogRecorder
from lending_kernel.services.snapshot_service import SnapshotAggregator

__all__ = [
    "DEFAULT_PRIORITY",
    "DomainEventBus",
    "HandlerOutcome",
    "HandlerRegistration",
    "HandlerRegistry",
    "OutcomeStatus",
    "PublishResult",
    "EventIngestionLedger",
    "ProcessingLogRecorder",
    "SnapshotAggregator",
]
