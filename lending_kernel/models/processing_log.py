"""
Module: lending_kernel.models.processing_log
Responsibility: Execution history of event handlers -- one row per handler
    invocation recorded by ProcessingLogRecorder.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import Base, UUIDString


class ProcessingStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class EventProcessingLog(Base):
    """Outcome of one handler invocation for one event."""

    __tablename__ = "event_processing_log"

    __table_args__ = (
        Index("idx_event_processing_event", "event_id"),
        Index("idx_event_processing_handler", "handler_name", "status"),
    )

    event_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    handler_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    execution_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<EventProcessingLog {self.handler_name} {self.status}>"
