"""Pure domain types: clock, events, cash flows and calendar helpers."""

from lending_kernel.domain.cash_flow import CashFlow, FlowDirection
from lending_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lending_kernel.domain.events import (
    DomainEvent,
    EventMetadata,
    EventType,
    known_event_type,
)

__all__ = [
    "CashFlow",
    "FlowDirection",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DomainEvent",
    "EventMetadata",
    "EventType",
    "known_event_type",
]
