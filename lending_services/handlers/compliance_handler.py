"""
ComplianceAuditHandler -- append-only audit entries for regulated actions.

Handles Loan.Funded and Payment.Processed.  Each event becomes one
ComplianceAuditLog row naming the entity, the acting user and the changed
values.
"""

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from lending_kernel.db.engine import unit_of_work
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import DomainEvent, EventType, thaw
from lending_kernel.exceptions import InvalidEventError
from lending_kernel.logging_config import get_logger
from lending_kernel.models.audit_log import ComplianceAuditLog
from lending_kernel.utils.hashing import to_json_safe

logger = get_logger("services.handlers.compliance")


@dataclass(frozen=True)
class AuditRule:
    """How one event type maps onto an audit entry."""

    entity_type: str
    id_field: str
    actor_field: str
    action: str
    change_fields: tuple[str, ...]
    timestamp_field: str


AUDITED_EVENTS: dict[str, AuditRule] = {
    EventType.LOAN_FUNDED.value: AuditRule(
        entity_type="loan",
        id_field="loanId",
        actor_field="fundedBy",
        action="funded",
        change_fields=("principal",),
        timestamp_field="fundedAt",
    ),
    EventType.PAYMENT_PROCESSED.value: AuditRule(
        entity_type="payment",
        id_field="paymentId",
        actor_field="processedBy",
        action="processed",
        change_fields=("loanId", "amount"),
        timestamp_field="processedAt",
    ),
}


class ComplianceAuditHandler:
    HANDLER_NAME = "ComplianceAuditHandler"
    PRIORITY = 10

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def __call__(self, event: DomainEvent) -> None:
        rule = AUDITED_EVENTS.get(event.event_type)
        if rule is None:
            raise InvalidEventError(
                f"no audit mapping for event type {event.event_type!r}",
                event_id=event.event_id,
            )

        payload = thaw(event.payload)
        entity_id = payload.get(rule.id_field) or event.aggregate_id
        now = self._clock.now()
        changes = {f: payload.get(f) for f in rule.change_fields}
        changes[rule.timestamp_field] = now
        actor = payload.get(rule.actor_field) or event.metadata.actor_id

        with unit_of_work(self._session_factory) as session:
            session.add(
                ComplianceAuditLog(
                    organization_id=payload.get("organizationId") or event.metadata.organization_id,
                    source_event_id=event.event_id,
                    event_type=event.event_type,
                    entity_type=rule.entity_type,
                    entity_id=str(entity_id),
                    actor_id=str(actor) if actor is not None else None,
                    action=rule.action,
                    changes=to_json_safe(changes),
                    recorded_at=now,
                )
            )

        logger.info(
            "compliance_audit_recorded",
            extra={
                "entity_type": rule.entity_type,
                "entity_id": str(entity_id),
                "action": rule.action,
            },
        )
