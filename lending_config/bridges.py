"""
Config -> Kernel / Engine / Service Bridges.

Functions that convert AnalyticsConfig sections into the inputs the kernel,
engines and services accept.  These live in lending_config (the producer)
because the kernel and engines must never import lending_config.

Usage:
    from lending_config.bridges import (
        build_fund_performance_service,
        init_engine_from_config,
    )

    config = get_active_config()
    init_engine_from_config(config)
    with session_scope() as session:
        service = build_fund_performance_service(session, config)
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from lending_config.schema import AnalyticsConfig
from lending_engines.irr import IrrSolverLimits
from lending_kernel.db.engine import init_engine_from_url
from lending_kernel.domain.clock import Clock
from lending_kernel.selectors.kpi_selector import KpiSelector
from lending_kernel.services.processing_log import ProcessingLogRecorder
from lending_services.fund_performance import FundPerformanceService


def build_irr_limits(config: AnalyticsConfig) -> IrrSolverLimits:
    irr = config.irr
    return IrrSolverLimits(
        initial_rate=irr.initial_rate,
        tolerance=irr.tolerance,
        max_iterations=irr.max_iterations,
        derivative_floor=irr.derivative_floor,
        nudge=irr.nudge,
        max_rate=irr.max_rate,
        min_rate=irr.min_rate,
        day_count_basis=irr.day_count_basis,
    )


def init_engine_from_config(config: AnalyticsConfig) -> Engine:
    """Initialise the kernel's module-level engine from the database section."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def build_kpi_selector(
    session: Session,
    config: AnalyticsConfig,
    clock: Clock | None = None,
) -> KpiSelector:
    return KpiSelector(session, clock, window_days=config.kpi.window_days)


def build_fund_performance_service(
    session: Session,
    config: AnalyticsConfig,
    clock: Clock | None = None,
) -> FundPerformanceService:
    """FundPerformanceService with IRR bounds and portfolio limits from ``config``."""
    portfolio = config.portfolio
    return FundPerformanceService(
        session,
        clock,
        irr_limits=build_irr_limits(config),
        top_limit=portfolio.top_funds,
        top_investments=portfolio.top_investments,
        fund_types=portfolio.fund_types,
    )


def build_processing_log_recorder(
    session_factory: Callable[[], Session],
    config: AnalyticsConfig,
    clock: Clock | None = None,
) -> ProcessingLogRecorder:
    return ProcessingLogRecorder(
        session_factory,
        clock,
        record_skipped=config.handlers.record_skipped,
    )
