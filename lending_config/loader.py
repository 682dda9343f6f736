"""
Configuration Loader (``lending_config.loader``).

Responsibility
--------------
Loads YAML files, deep-merges an override onto the packaged defaults and
parses the result into the frozen ``lending_config.schema`` dataclasses.
Runtime callers go through ``lending_config.get_active_config()``; this
module is the tooling behind it.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``validate_config`` collects every problem before raising, so one
  ``ConfigurationError`` reports them all.
* ``compute_checksum`` is a deterministic SHA-256 over the merged mapping.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML or wrong value types  -> ``ConfigurationError``.
* Out-of-range values  -> ``ConfigurationError`` listing each error.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from lending_config.schema import (
    ALERT_SEVERITIES,
    AlertRuleDef,
    AnalyticsConfig,
    DatabaseConfig,
    HandlerConfig,
    HandlerOverride,
    IrrConfig,
    KpiConfig,
    PortfolioConfig,
)
from lending_kernel.exceptions import ConfigurationError
from lending_kernel.utils.hashing import hash_payload


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError([str(exc)], source=str(path)) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(["top level must be a mapping"], source=str(path))
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive merge; mappings merge key by key, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    return hash_payload(data)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
    )


def parse_irr(data: dict[str, Any]) -> IrrConfig:
    defaults = IrrConfig()
    return IrrConfig(
        initial_rate=float(data.get("initial_rate", defaults.initial_rate)),
        tolerance=float(data.get("tolerance", defaults.tolerance)),
        max_iterations=int(data.get("max_iterations", defaults.max_iterations)),
        derivative_floor=float(data.get("derivative_floor", defaults.derivative_floor)),
        nudge=float(data.get("nudge", defaults.nudge)),
        max_rate=float(data.get("max_rate", defaults.max_rate)),
        min_rate=float(data.get("min_rate", defaults.min_rate)),
        day_count_basis=float(data.get("day_count_basis", defaults.day_count_basis)),
    )


def parse_portfolio(data: dict[str, Any]) -> PortfolioConfig:
    defaults = PortfolioConfig()
    return PortfolioConfig(
        top_funds=int(data.get("top_funds", defaults.top_funds)),
        top_investments=int(data.get("top_investments", defaults.top_investments)),
        fund_types=tuple(data.get("fund_types", defaults.fund_types)),
    )


def parse_handlers(data: dict[str, Any]) -> HandlerConfig:
    overrides = tuple(
        HandlerOverride(
            name=name,
            priority=int(entry["priority"]) if entry.get("priority") is not None else None,
            enabled=bool(entry.get("enabled", True)),
        )
        for name, entry in sorted((data.get("overrides") or {}).items())
    )
    return HandlerConfig(
        overrides=overrides,
        record_skipped=bool(data.get("record_skipped", False)),
    )


def parse_alert_rule(data: dict[str, Any]) -> AlertRuleDef:
    """
    Parse one ``alert_rules`` entry.

    Raises:
        KeyError: if ``event_type``, ``code``, ``severity`` or ``message``
            is missing.
    """
    code = data["code"]
    return AlertRuleDef(
        event_type=data["event_type"],
        code=code,
        severity=data["severity"],
        message_template=data["message"],
        handler_name=data.get("handler_name") or f"Alert.{code}",
        priority=int(data.get("priority", 5)),
        entity_type=data.get("entity_type"),
        defaults=tuple(sorted((k, str(v)) for k, v in (data.get("defaults") or {}).items())),
    )


def parse_config(data: dict[str, Any], checksum: str = "") -> AnalyticsConfig:
    """
    Build an ``AnalyticsConfig`` from a merged mapping.

    Raises:
        ConfigurationError: on a missing required alert-rule key or a value
            of the wrong type.
    """
    try:
        return AnalyticsConfig(
            version=int(data.get("version", 1)),
            database=parse_database(data.get("database") or {}),
            kpi=KpiConfig(window_days=int((data.get("kpi") or {}).get("window_days", 30))),
            irr=parse_irr(data.get("irr") or {}),
            portfolio=parse_portfolio(data.get("portfolio") or {}),
            handlers=parse_handlers(data.get("handlers") or {}),
            alert_rules=tuple(parse_alert_rule(r) for r in data.get("alert_rules") or ()),
            checksum=checksum,
        )
    except KeyError as exc:
        raise ConfigurationError([f"missing required key {exc.args[0]!r}"]) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigurationError([str(exc)]) from exc


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(config: AnalyticsConfig) -> list[str]:
    """Return every problem found; an empty list means valid."""
    errors: list[str] = []

    if not config.database.url:
        errors.append("database.url must not be empty")
    if config.kpi.window_days <= 0:
        errors.append(f"kpi.window_days must be positive, got {config.kpi.window_days}")

    irr = config.irr
    if irr.min_rate <= -1.0:
        errors.append(f"irr.min_rate must be > -1, got {irr.min_rate}")
    if irr.min_rate >= irr.max_rate:
        errors.append(f"irr.min_rate ({irr.min_rate}) must be below irr.max_rate ({irr.max_rate})")
    if not irr.min_rate <= irr.initial_rate <= irr.max_rate:
        errors.append(f"irr.initial_rate {irr.initial_rate} outside [min_rate, max_rate]")
    if irr.tolerance <= 0 or irr.derivative_floor <= 0:
        errors.append("irr.tolerance and irr.derivative_floor must be positive")
    if irr.max_iterations < 1:
        errors.append(f"irr.max_iterations must be >= 1, got {irr.max_iterations}")
    if irr.day_count_basis <= 0:
        errors.append("irr.day_count_basis must be positive")

    if config.portfolio.top_funds < 0 or config.portfolio.top_investments < 0:
        errors.append("portfolio limits must not be negative")
    if not config.portfolio.fund_types:
        errors.append("portfolio.fund_types must not be empty")

    seen: set[str] = set()
    for rule in config.alert_rules:
        if rule.severity not in ALERT_SEVERITIES:
            errors.append(
                f"alert rule {rule.code}: severity {rule.severity!r} not in {ALERT_SEVERITIES}"
            )
        if rule.event_type in seen:
            errors.append(f"duplicate alert rule for event type {rule.event_type}")
        seen.add(rule.event_type)

    return errors
