"""
Default handler wiring for a DomainEventBus.

``register_default_handlers`` subscribes the analytics, alert, compliance
and (optionally) payment-schedule handlers with the priorities below,
after applying the per-handler priority and enabled overrides from
HandlerConfig.  ``unregister_default_handlers`` removes exactly those
registrations.

    AnalyticsSnapshotHandler   every EventType member      50
    Alert.<CODE>               one per alert rule          5 (fund rules 100)
    ComplianceAuditHandler     Loan.Funded, Payment.Processed  10
    PaymentScheduleHandler     Loan.Funded                 10
"""

from collections.abc import Callable

from sqlalchemy.orm import Session

from lending_config.schema import AnalyticsConfig
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import EventType
from lending_kernel.logging_config import get_logger
from lending_kernel.services.event_bus import DomainEventBus, HandlerFn
from lending_services.handlers.alert_handler import AlertHandler
from lending_services.handlers.compliance_handler import (
    AUDITED_EVENTS,
    ComplianceAuditHandler,
)
from lending_services.handlers.payment_schedule_handler import (
    PaymentScheduleHandler,
    ScheduleGenerator,
)
from lending_services.handlers.snapshot_handler import AnalyticsSnapshotHandler

logger = get_logger("services.handlers.registry")

_DEFAULT_HANDLER_NAMES: tuple[str, ...] = (
    AnalyticsSnapshotHandler.HANDLER_NAME,
    ComplianceAuditHandler.HANDLER_NAME,
    PaymentScheduleHandler.HANDLER_NAME,
)


def _subscribe(
    bus: DomainEventBus,
    config: AnalyticsConfig,
    name: str,
    event_type: str,
    handler: HandlerFn,
    priority: int,
) -> None:
    bus.subscribe(
        name,
        event_type,
        handler,
        priority=config.handlers.priority_for(name, priority),
        is_enabled=config.handlers.is_enabled(name),
    )


def register_default_handlers(
    bus: DomainEventBus,
    session_factory: Callable[[], Session],
    config: AnalyticsConfig,
    clock: Clock | None = None,
    schedule_generator: ScheduleGenerator | None = None,
) -> list[str]:
    """
    Subscribe the standard handlers on ``bus``.

    Returns:
        The distinct handler names registered, in registration order.

    Raises:
        DuplicateHandlerError: if ``bus`` already holds one of these
            registrations.
    """
    clock = clock or SystemClock()
    names: list[str] = []

    snapshot = AnalyticsSnapshotHandler(session_factory, clock)
    for event_type in EventType:
        _subscribe(
            bus, config, snapshot.HANDLER_NAME, event_type.value, snapshot,
            AnalyticsSnapshotHandler.PRIORITY,
        )
    names.append(snapshot.HANDLER_NAME)

    for rule in config.alert_rules:
        alert = AlertHandler(rule, session_factory)
        _subscribe(bus, config, alert.handler_name, rule.event_type, alert, rule.priority)
        names.append(alert.handler_name)

    audit = ComplianceAuditHandler(session_factory, clock)
    for event_type in AUDITED_EVENTS:
        _subscribe(
            bus, config, audit.HANDLER_NAME, event_type, audit,
            ComplianceAuditHandler.PRIORITY,
        )
    names.append(audit.HANDLER_NAME)

    if schedule_generator is not None:
        schedule = PaymentScheduleHandler(schedule_generator)
        _subscribe(
            bus, config, schedule.HANDLER_NAME, EventType.LOAN_FUNDED.value, schedule,
            PaymentScheduleHandler.PRIORITY,
        )
        names.append(schedule.HANDLER_NAME)

    logger.info(
        "default_handlers_registered",
        extra={"handler_count": len(names), "registration_count": len(bus.registry)},
    )
    return names


def unregister_default_handlers(bus: DomainEventBus, config: AnalyticsConfig | None = None) -> int:
    """
    Remove the standard handlers from ``bus``.

    Alert handlers are found by their ``Alert.`` prefix unless ``config`` is
    given, in which case exactly its rule names are removed.

    Returns:
        Number of registrations removed.
    """
    if config is not None:
        alert_names = [rule.handler_name for rule in config.alert_rules]
    else:
        alert_names = [n for n in bus.registry.handler_names() if n.startswith("Alert.")]
    removed = 0
    for name in (*_DEFAULT_HANDLER_NAMES, *alert_names):
        removed += bus.unsubscribe(name)
    logger.info("default_handlers_unregistered", extra={"registration_count": removed})
    return removed
