"""Event bus handlers and their default wiring."""

from lending_services.handlers.alert_handler import AlertHandler, render_message
from lending_services.handlers.compliance_handler import AUDITED_EVENTS, ComplianceAuditHandler
from lending_services.handlers.payment_schedule_handler import (
    PaymentScheduleHandler,
    ScheduleGenerator,
)
from lending_services.handlers.registry import (
    register_default_handlers,
    unregister_default_handlers,
)
from lending_services.handlers.snapshot_handler import AnalyticsSnapshotHandler

__all__ = [
    "AUDITED_EVENTS",
    "AlertHandler",
    "AnalyticsSnapshotHandler",
    "ComplianceAuditHandler",
    "PaymentScheduleHandler",
    "ScheduleGenerator",
    "register_default_handlers",
    "render_message",
    "unregister_default_handlers",
]
