"""
AlertHandler -- turns configured domain events into operator alerts.

One handler instance per AlertRuleDef.  The rule's message template is
rendered against the event payload, and the alert is attached to the
event's aggregate (or to the rule's entity type when it names one).

Failure modes:
    - Database errors propagate to the bus, which records the failure
      and carries on with the remaining handlers.
"""

from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from lending_config.schema import AlertRuleDef
from lending_kernel.db.engine import unit_of_work
from lending_kernel.domain.events import DomainEvent, thaw
from lending_kernel.logging_config import get_logger
from lending_kernel.models.alerts import Alert, AlertStatus
from lending_kernel.utils.hashing import to_json_safe

logger = get_logger("services.handlers.alert")

MISSING_VALUE = "N/A"


class _TemplateValues(dict):
    def __missing__(self, key: str) -> str:
        return MISSING_VALUE


def render_message(rule: AlertRuleDef, event: DomainEvent) -> str:
    """Fill ``rule.message_template`` from the payload, rule defaults, then N/A."""
    values = _TemplateValues(rule.defaults)
    payload: dict[str, Any] = thaw(event.payload)
    values.update({k: v for k, v in payload.items() if v is not None and v != ""})
    values.setdefault("aggregateId", event.aggregate_id or MISSING_VALUE)
    values.setdefault("eventId", str(event.event_id))
    return rule.message_template.format_map(values)


class AlertHandler:
    """Persists one Alert per matching event."""

    def __init__(
        self,
        rule: AlertRuleDef,
        session_factory: Callable[[], Session],
    ):
        self.rule = rule
        self._session_factory = session_factory

    @property
    def handler_name(self) -> str:
        return self.rule.handler_name

    def __call__(self, event: DomainEvent) -> None:
        message = render_message(self.rule, event)
        entity_type = self.rule.entity_type or event.aggregate_type or "system"
        entity_id = event.aggregate_id or str(event.event_id)

        with unit_of_work(self._session_factory) as session:
            session.add(
                Alert(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    code=self.rule.code,
                    severity=self.rule.severity,
                    status=AlertStatus.UNREAD.value,
                    message=message,
                    source_event_id=event.event_id,
                    details=to_json_safe(
                        {
                            "event_type": event.event_type,
                            "payload": thaw(event.payload),
                            "metadata": event.metadata.as_dict(),
                        }
                    ),
                )
            )

        logger.info(
            "alert_created",
            extra={
                "code": self.rule.code,
                "severity": self.rule.severity,
                "entity_type": entity_type,
                "entity_id": entity_id,
            },
        )
