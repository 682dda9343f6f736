"""
Module: lending_kernel.models.alerts
Responsibility: ORM persistence for operational alerts raised by the alert
    handler when payment, draw, inspection, loan or fund events arrive.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase, UUIDString


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


class Alert(TrackedBase):
    """An operator-facing notification about one entity."""

    __tablename__ = "alerts"

    __table_args__ = (
        Index("idx_alerts_entity", "entity_type", "entity_id"),
        Index("idx_alerts_status", "status"),
    )

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AlertStatus.UNREAD.value,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    source_event_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Alert {self.code} {self.entity_type}:{self.entity_id}>"
