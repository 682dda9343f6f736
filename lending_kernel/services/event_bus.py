"""
DomainEventBus -- in-process, priority-ordered, failure-isolated fan-out.

Responsibility:
    Delivers each published DomainEvent to every enabled handler subscribed
    to its event type, one after another on the caller's thread.

Architecture position:
    Kernel > Services.  Owns a HandlerRegistry; knows nothing about what
    handlers do.  Concrete handlers and their wiring live in
    ``lending_services.handlers``.

Invariants enforced:
    - Ordering: within one ``publish`` handlers run in ascending priority,
      ties broken by registration order.  No ordering across publishes.
    - Isolation: an exception raised by a handler is caught, logged and
      recorded as a FAILURE outcome.  Later handlers still run and
      ``publish`` itself does not raise.
    - Registry ownership: each bus has its own HandlerRegistry; there is no
      module-level subscription state, so isolated buses coexist.
    - (handler_name, event_type) pairs are unique; one name may subscribe to
      many event types.

Failure modes:
    - InvalidEventError from ``publish`` when the event is not a DomainEvent
      or has an empty event type.  Nothing is dispatched in that case.
    - DuplicateHandlerError from ``subscribe`` on a repeated pair.
    - HandlerNotFoundError from ``set_enabled`` / ``handler_stats`` for an
      unknown handler name.

Delivery is best-effort and at-least-once from the publisher's point of
view: there are no retries.  Handlers that must be idempotent use the
event ingestion ledger.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import DomainEvent, EventType
from lending_kernel.exceptions import (
    DuplicateHandlerError,
    HandlerNotFoundError,
    InvalidEventError,
)
from lending_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.event_bus")

DEFAULT_PRIORITY = 100

HandlerFn = Callable[[DomainEvent], Any]


# =============================================================================
# Registry
# =============================================================================


@dataclass(frozen=True)
class HandlerRegistration:
    """One handler subscribed to one event type."""

    handler_name: str
    event_type: str
    handler: HandlerFn
    priority: int = DEFAULT_PRIORITY
    is_enabled: bool = True
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.priority, self.sequence)


class HandlerRegistry:
    """Map from event type to the handlers subscribed to it.

    Contract:
        - ``register()`` adds a registration; raises DuplicateHandlerError
          when the same name is already registered for that event type.
        - ``handlers_for()`` returns registrations in dispatch order,
          disabled ones included (the bus reports them as skipped).
        - ``unregister()`` removes a name from every event type.
    """

    def __init__(self) -> None:
        self._by_type: dict[str, list[HandlerRegistration]] = {}
        self._sequence = itertools.count()

    def register(
        self,
        handler_name: str,
        event_type: str | EventType,
        handler: HandlerFn,
        priority: int = DEFAULT_PRIORITY,
        is_enabled: bool = True,
    ) -> HandlerRegistration:
        if not handler_name:
            raise ValueError("handler_name must be non-empty")
        if not callable(handler):
            raise TypeError(f"Handler '{handler_name}' is not callable")
        key = str(event_type)
        bucket = self._by_type.setdefault(key, [])
        if any(r.handler_name == handler_name for r in bucket):
            raise DuplicateHandlerError(handler_name, key)
        registration = HandlerRegistration(
            handler_name=handler_name,
            event_type=key,
            handler=handler,
            priority=priority,
            is_enabled=is_enabled,
            sequence=next(self._sequence),
        )
        bucket.append(registration)
        bucket.sort(key=lambda r: r.sort_key)
        return registration

    def unregister(self, handler_name: str) -> int:
        """Remove every registration under ``handler_name``; return how many went."""
        removed = 0
        for key in list(self._by_type):
            bucket = self._by_type[key]
            kept = [r for r in bucket if r.handler_name != handler_name]
            removed += len(bucket) - len(kept)
            if kept:
                self._by_type[key] = kept
            else:
                del self._by_type[key]
        return removed

    def set_enabled(self, handler_name: str, enabled: bool) -> int:
        """Toggle every registration of ``handler_name``.

        Raises:
            HandlerNotFoundError: no registration carries that name.
        """
        changed = 0
        for key, bucket in self._by_type.items():
            self._by_type[key] = [
                replace(r, is_enabled=enabled) if r.handler_name == handler_name else r
                for r in bucket
            ]
            changed += sum(1 for r in bucket if r.handler_name == handler_name)
        if changed == 0:
            raise HandlerNotFoundError(handler_name)
        return changed

    def handlers_for(self, event_type: str | EventType) -> tuple[HandlerRegistration, ...]:
        return tuple(self._by_type.get(str(event_type), ()))

    def registrations(self, handler_name: str | None = None) -> tuple[HandlerRegistration, ...]:
        """All registrations, optionally filtered by name, in registration order."""
        regs = [
            r
            for bucket in self._by_type.values()
            for r in bucket
            if handler_name is None or r.handler_name == handler_name
        ]
        return tuple(sorted(regs, key=lambda r: r.sequence))

    def event_types(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_type))

    def handler_names(self) -> tuple[str, ...]:
        return tuple(sorted({r.handler_name for r in self.registrations()}))

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._by_type.values())

    def __contains__(self, handler_name: object) -> bool:
        return any(
            r.handler_name == handler_name
            for bucket in self._by_type.values()
            for r in bucket
        )


# =============================================================================
# Dispatch results
# =============================================================================


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class HandlerOutcome:
    """What happened when one handler saw one event."""

    event_id: UUID
    event_type: str
    handler_name: str
    priority: int
    status: OutcomeStatus
    duration_ms: float = 0.0
    error: str | None = None
    error_type: str | None = None


@dataclass(frozen=True)
class PublishResult:
    """Ordered outcomes of one ``publish`` call."""

    event_id: UUID
    event_type: str
    outcomes: tuple[HandlerOutcome, ...]

    @property
    def invoked(self) -> tuple[str, ...]:
        return tuple(
            o.handler_name for o in self.outcomes if o.status is not OutcomeStatus.SKIPPED
        )

    @property
    def failed(self) -> tuple[HandlerOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status is OutcomeStatus.FAILURE)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


@dataclass
class HandlerStats:
    """Running success / failure counts for one handler name."""

    success_count: int = 0
    failure_count: int = 0
    last_executed_at: datetime | None = None


OutcomeSink = Callable[[HandlerOutcome], None]


# =============================================================================
# Bus
# =============================================================================


class DomainEventBus:
    """
    Synchronous publish/subscribe bus.

    Args:
        registry: Registry to dispatch from; a fresh one when omitted.
        clock: Time source for handler statistics.
        outcome_sink: Optional callable receiving each HandlerOutcome, e.g.
            ProcessingLogRecorder.  Its own failures are logged and ignored.
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        clock: Clock | None = None,
        outcome_sink: OutcomeSink | None = None,
    ):
        self._registry = registry if registry is not None else HandlerRegistry()
        self._clock = clock or SystemClock()
        self._outcome_sink = outcome_sink
        self._stats: dict[str, HandlerStats] = {}

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    def subscribe(
        self,
        handler_name: str,
        event_type: str | EventType,
        handler: HandlerFn,
        priority: int = DEFAULT_PRIORITY,
        is_enabled: bool = True,
    ) -> HandlerRegistration:
        registration = self._registry.register(
            handler_name, event_type, handler, priority=priority, is_enabled=is_enabled,
        )
        self._stats.setdefault(handler_name, HandlerStats())
        logger.debug(
            "handler_subscribed",
            extra={
                "handler_name": handler_name,
                "event_type": registration.event_type,
                "priority": priority,
                "is_enabled": is_enabled,
            },
        )
        return registration

    def unsubscribe(self, handler_name: str) -> int:
        removed = self._registry.unregister(handler_name)
        self._stats.pop(handler_name, None)
        logger.debug(
            "handler_unsubscribed",
            extra={"handler_name": handler_name, "registrations_removed": removed},
        )
        return removed

    def set_enabled(self, handler_name: str, enabled: bool) -> None:
        self._registry.set_enabled(handler_name, enabled)
        logger.info(
            "handler_toggled",
            extra={"handler_name": handler_name, "is_enabled": enabled},
        )

    def handler_stats(self, handler_name: str) -> HandlerStats:
        try:
            return self._stats[handler_name]
        except KeyError:
            raise HandlerNotFoundError(handler_name) from None

    def publish(self, event: DomainEvent) -> PublishResult:
        """
        Dispatch ``event`` to its subscribers.

        Raises:
            InvalidEventError: the event is malformed.  Handler exceptions
                never propagate.
        """
        self._validate(event)

        outcomes: list[HandlerOutcome] = []
        with LogContext.bind(
            event_id=str(event.event_id),
            event_type=event.event_type,
            correlation_id=event.metadata.correlation_id,
        ):
            registrations = self._registry.handlers_for(event.event_type)
            logger.debug(
                "event_published",
                extra={"handler_count": len(registrations)},
            )
            for registration in registrations:
                outcome = self._dispatch(registration, event)
                outcomes.append(outcome)
                self._emit(outcome)

        result = PublishResult(
            event_id=event.event_id,
            event_type=event.event_type,
            outcomes=tuple(outcomes),
        )
        if result.failed:
            logger.warning(
                "event_dispatch_partial_failure",
                extra={
                    "event_id": str(event.event_id),
                    "failed_handlers": [o.handler_name for o in result.failed],
                },
            )
        return result

    def _dispatch(self, registration: HandlerRegistration, event: DomainEvent) -> HandlerOutcome:
        name = registration.handler_name
        if not registration.is_enabled:
            logger.debug("handler_skipped_disabled", extra={"handler_name": name})
            return HandlerOutcome(
                event_id=event.event_id,
                event_type=event.event_type,
                handler_name=name,
                priority=registration.priority,
                status=OutcomeStatus.SKIPPED,
            )

        stats = self._stats.setdefault(name, HandlerStats())
        with LogContext.bind(handler_name=name):
            t0 = time.monotonic()
            try:
                registration.handler(event)
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                stats.failure_count += 1
                stats.last_executed_at = self._clock.now()
                logger.exception(
                    "handler_failed",
                    extra={"priority": registration.priority, "duration_ms": duration_ms},
                )
                return HandlerOutcome(
                    event_id=event.event_id,
                    event_type=event.event_type,
                    handler_name=name,
                    priority=registration.priority,
                    status=OutcomeStatus.FAILURE,
                    duration_ms=duration_ms,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            stats.success_count += 1
            stats.last_executed_at = self._clock.now()
            logger.debug(
                "handler_succeeded",
                extra={"priority": registration.priority, "duration_ms": duration_ms},
            )
            return HandlerOutcome(
                event_id=event.event_id,
                event_type=event.event_type,
                handler_name=name,
                priority=registration.priority,
                status=OutcomeStatus.SUCCESS,
                duration_ms=duration_ms,
            )

    def _emit(self, outcome: HandlerOutcome) -> None:
        if self._outcome_sink is None:
            return
        try:
            self._outcome_sink(outcome)
        except Exception:
            logger.exception(
                "outcome_sink_failed",
                extra={"handler_name": outcome.handler_name},
            )

    @staticmethod
    def _validate(event: Any) -> None:
        if not isinstance(event, DomainEvent):
            raise InvalidEventError(
                f"expected DomainEvent, got {type(event).__name__}",
            )
        if not isinstance(event.event_type, str) or not event.event_type.strip():
            raise InvalidEventError("event_type is empty", event_id=event.event_id)
        if event.occurred_at is None:
            raise InvalidEventError("occurred_at is missing", event_id=event.event_id)
