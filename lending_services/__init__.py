"""
lending_services -- Package init and public API.

Responsibility:
    Orchestration over the kernel and the pure engines: the fund
    performance read API and the event bus handlers with their default
    wiring.

Architecture position:
    Services.  Dependency direction:
        lending_services/ -> lending_engines/  (allowed)
        lending_services/ -> lending_kernel/   (allowed)
        lending_services/ -> lending_config/   (allowed)
        lending_engines/  -> lending_services/ (FORBIDDEN)
        lending_kernel/   -> lending_services/ (FORBIDDEN)
"""

from lending_kernel.logging_config import get_logger

logger = get_logger("services")

from lending_services.fund_performance import FundPerformanceService
from lending_services.handlers import (
    register_default_handlers,
    unregister_default_handlers,
)

__all__ = [
    "FundPerformanceService",
    "register_default_handlers",
    "unregister_default_handlers",
]
