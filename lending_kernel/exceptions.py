"""
Typed exception hierarchy for the lending analytics engine.

Every error raised by the engine is a subclass of LendingKernelError and
carries:
  1. a typed class, so callers catch by type rather than by message;
  2. a ``code`` class attribute that is machine-readable and API-safe;
  3. structured attributes describing what went wrong.

Example:
    try:
        aggregator.compute_from_event(event)
    except SnapshotComputationError as e:
        scheduler.retry_later(e.snapshot_date, reason=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LendingKernelError (base)
    |
    +-- EventError
    |   +-- InvalidEventError
    |
    +-- RegistryError
    |   +-- DuplicateHandlerError
    |   +-- HandlerNotFoundError
    |
    +-- SnapshotError
    |   +-- SnapshotComputationError
    |   +-- InvalidSnapshotDateError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Event           | INVALID_EVENT               | publish() given a malformed event
----------------|-----------------------------|-----------------------------------------
Registry        | DUPLICATE_HANDLER           | Same (handler, event type) registered twice
                | HANDLER_NOT_FOUND           | Toggling or reading an unknown handler
----------------|-----------------------------|-----------------------------------------
Snapshot        | SNAPSHOT_COMPUTATION_FAILED | Aggregation query or upsert failed
                | INVALID_SNAPSHOT_DATE       | Date argument could not be parsed
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE attempted on an ingestion record
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_CONFIGURATION       | Configuration file failed validation

Outcomes that are NOT errors: a missing fund (calculators return None), an
IRR that does not converge (solver returns None), and a duplicate event id
handed to the ingestion ledger (silent no-op).
"""

from datetime import date
from typing import Any


class LendingKernelError(Exception):
    """Base exception for all lending kernel errors."""

    code: str = "LENDING_KERNEL_ERROR"


# =============================================================================
# Event Errors
# =============================================================================


class EventError(LendingKernelError):
    """Base for event-related errors."""

    code: str = "EVENT_ERROR"


class InvalidEventError(EventError):
    """Event is not well-formed and cannot be dispatched."""

    code: str = "INVALID_EVENT"

    def __init__(self, reason: str, event_id: Any = None):
        self.reason = reason
        self.event_id = str(event_id) if event_id is not None else None
        super().__init__(f"Invalid event {self.event_id or '<unknown>'}: {reason}")


# =============================================================================
# Registry Errors
# =============================================================================


class RegistryError(LendingKernelError):
    """Base for handler registry errors."""

    code: str = "REGISTRY_ERROR"


class DuplicateHandlerError(RegistryError):
    """A handler name is already subscribed to the given event type."""

    code: str = "DUPLICATE_HANDLER"

    def __init__(self, handler_name: str, event_type: str):
        self.handler_name = handler_name
        self.event_type = event_type
        super().__init__(
            f"Handler '{handler_name}' is already registered for '{event_type}'"
        )


class HandlerNotFoundError(RegistryError):
    """No registration exists under the given handler name."""

    code: str = "HANDLER_NOT_FOUND"

    def __init__(self, handler_name: str):
        self.handler_name = handler_name
        super().__init__(f"No handler registered under '{handler_name}'")


# =============================================================================
# Snapshot Errors
# =============================================================================


class SnapshotError(LendingKernelError):
    """Base for snapshot errors."""

    code: str = "SNAPSHOT_ERROR"


class SnapshotComputationError(SnapshotError):
    """Recomputing a snapshot failed; the row for this date may be stale."""

    code: str = "SNAPSHOT_COMPUTATION_FAILED"

    def __init__(self, variant: str, snapshot_date: date, cause: str):
        self.variant = variant
        self.snapshot_date = snapshot_date
        self.cause = cause
        super().__init__(
            f"Failed to compute {variant} snapshot for {snapshot_date}: {cause}"
        )


class InvalidSnapshotDateError(SnapshotError):
    """A snapshot or window date could not be interpreted."""

    code: str = "INVALID_SNAPSHOT_DATE"

    def __init__(self, value: Any):
        self.value = repr(value)
        super().__init__(f"Cannot interpret {value!r} as a calendar date")


# =============================================================================
# Immutability Errors
# =============================================================================


class ImmutabilityError(LendingKernelError):
    """Base for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """An append-only record was modified."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LendingKernelError):
    """Configuration failed to load or validate."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, errors: list[str] | tuple[str, ...], source: str | None = None):
        self.errors = tuple(errors)
        self.source = source
        detail = "; ".join(self.errors)
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid configuration{where}: {detail}")
