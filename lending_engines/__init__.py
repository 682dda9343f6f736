"""
Module: lending_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    lending_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import lending_kernel domain values and db.types helpers.
    MUST NOT import lending_services or lending_config.

Invariants enforced:
    - Purity: engines never read the clock.  Dates are passed in by the
      calling service.
    - Decimal arithmetic for money.  The IRR solver is the one place floats
      are used, and it hands back a rate the caller converts to Decimal.

Usage:
    from lending_engines.irr import solve_irr, IrrSolverLimits
    from lending_engines.performance import build_fund_performance, summarize_portfolio
"""

from lending_kernel.logging_config import get_logger

logger = get_logger("engines")

from lending_engines.irr import (
    DEFAULT_LIMITS,
    IrrSolverLimits,
    npv,
    npv_derivative,
    solve_irr,
)
from lending_engines.performance import (
    FundPerformance,
    FundTypeRollup,
    InvestmentPerformance,
    PortfolioSummary,
    TimelinePoint,
    build_fund_performance,
    build_timeline,
    rank_funds,
    rank_investments,
    summarize_portfolio,
    weighted_irr,
)
from lending_engines.tracer import traced_engine

__all__ = [
    "DEFAULT_LIMITS",
    "FundPerformance",
    "FundTypeRollup",
    "InvestmentPerformance",
    "IrrSolverLimits",
    "PortfolioSummary",
    "TimelinePoint",
    "build_fund_performance",
    "build_timeline",
    "npv",
    "npv_derivative",
    "rank_funds",
    "rank_investments",
    "solve_irr",
    "summarize_portfolio",
    "traced_engine",
    "weighted_irr",
]
