"""
AnalyticsConfig schema.

Frozen dataclasses the YAML configuration is parsed into.  Every field has a
default so a partial override file only has to name what it changes.
Bridges in ``lending_config.bridges`` turn these into kernel and engine
inputs; the kernel never imports this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ALERT_SEVERITIES = ("info", "warning", "critical")


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "postgresql+psycopg2://localhost/lending"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


# ---------------------------------------------------------------------------
# Calculation parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KpiConfig:
    """Default trailing window for KPI reads."""

    window_days: int = 30


@dataclass(frozen=True)
class IrrConfig:
    """Newton-Raphson bounds; mirrors lending_engines.irr.IrrSolverLimits."""

    initial_rate: float = 0.10
    tolerance: float = 1e-6
    max_iterations: int = 100
    derivative_floor: float = 1e-10
    nudge: float = 0.01
    max_rate: float = 10.0
    min_rate: float = -0.99
    day_count_basis: float = 365.0


@dataclass(frozen=True)
class PortfolioConfig:
    top_funds: int = 5
    top_investments: int = 5
    fund_types: tuple[str, ...] = ("private", "syndicated", "institutional")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HandlerOverride:
    """Priority / enabled override for one registered handler name."""

    name: str
    priority: int | None = None
    enabled: bool = True


@dataclass(frozen=True)
class HandlerConfig:
    overrides: tuple[HandlerOverride, ...] = ()
    record_skipped: bool = False

    def override_for(self, name: str) -> HandlerOverride | None:
        for override in self.overrides:
            if override.name == name:
                return override
        return None

    def priority_for(self, name: str, default: int) -> int:
        override = self.override_for(name)
        if override is None or override.priority is None:
            return default
        return override.priority

    def is_enabled(self, name: str) -> bool:
        override = self.override_for(name)
        return True if override is None else override.enabled


@dataclass(frozen=True)
class AlertRuleDef:
    """
    One event type that raises an alert.

    ``message_template`` is a ``str.format`` template over the event payload;
    payload keys it names but the event lacks are filled from ``defaults``,
    then with "N/A".
    """

    event_type: str
    code: str
    severity: str
    message_template: str
    handler_name: str
    priority: int = 5
    entity_type: str | None = None
    defaults: tuple[tuple[str, str], ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalyticsConfig:
    """The effective configuration, as returned by get_active_config()."""

    version: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    kpi: KpiConfig = field(default_factory=KpiConfig)
    irr: IrrConfig = field(default_factory=IrrConfig)
    portfolio: PortfolioConfig = field(default_factory=PortfolioConfig)
    handlers: HandlerConfig = field(default_factory=HandlerConfig)
    alert_rules: tuple[AlertRuleDef, ...] = ()
    checksum: str = ""

    def alert_rule_for(self, event_type: str) -> AlertRuleDef | None:
        for rule in self.alert_rules:
            if rule.event_type == event_type:
                return rule
        return None
