"""
Module: lending_kernel.models.audit_log
Responsibility: Compliance audit trail written when loans are funded and
    payments are processed.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: the before_update listener rejects modification.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import Base, UUIDString
from lending_kernel.exceptions import ImmutabilityViolationError


class ComplianceAuditLog(Base):
    """One audited action on a regulated entity."""

    __tablename__ = "compliance_audit_log"

    __table_args__ = (
        Index("idx_compliance_audit_entity", "entity_type", "entity_id"),
        Index("idx_compliance_audit_event", "source_event_id"),
    )

    organization_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_event_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    changes: Mapped[dict] = mapped_column(JSON, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ComplianceAuditLog {self.action} {self.entity_type}:{self.entity_id}>"


@event.listens_for(ComplianceAuditLog, "before_update")
def prevent_audit_log_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ComplianceAuditLog",
        entity_id=str(target.id),
        reason="audit entries are append-only",
    )
