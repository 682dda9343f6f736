"""
ProcessingLogRecorder -- persists handler outcomes from the event bus.

Plugged into DomainEventBus as its ``outcome_sink``.  Each outcome is written
in its own unit of work so the execution history survives a handler's
rollback.
"""

from collections.abc import Callable

from sqlalchemy.orm import Session

from lending_kernel.db.engine import unit_of_work
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.logging_config import get_logger
from lending_kernel.models.processing_log import EventProcessingLog
from lending_kernel.services.event_bus import HandlerOutcome, OutcomeStatus

logger = get_logger("services.processing_log")

_MAX_ERROR_LENGTH = 4000


class ProcessingLogRecorder:
    """Callable outcome sink writing EventProcessingLog rows."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        record_skipped: bool = False,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._record_skipped = record_skipped

    def __call__(self, outcome: HandlerOutcome) -> None:
        if outcome.status is OutcomeStatus.SKIPPED and not self._record_skipped:
            return
        error = outcome.error[:_MAX_ERROR_LENGTH] if outcome.error else None
        with unit_of_work(self._session_factory) as session:
            session.add(
                EventProcessingLog(
                    event_id=outcome.event_id,
                    event_type=outcome.event_type,
                    handler_name=outcome.handler_name,
                    status=outcome.status.value,
                    execution_time_ms=int(round(outcome.duration_ms)),
                    error_message=error,
                    processed_at=self._clock.now(),
                )
            )
        logger.debug(
            "handler_outcome_recorded",
            extra={"handler_name": outcome.handler_name, "status": outcome.status.value},
        )
