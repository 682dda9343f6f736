"""
IRR solver -- Newton-Raphson over irregularly dated cash flows.

Responsibility:
    ``solve_irr`` finds the annual rate r at which

        NPV(r) = sum( sign_i * amount_i / (1 + r) ** (days_i / 365) )

    is zero, where days_i is measured from the earliest flow and sign is
    -1 for outflows, +1 for inflows.

    Same-day shortcut: when every flow falls on one date, NPV does not
    depend on r, so Newton is skipped and the simple return
    (received / paid - 1) is reported, subject to the same rate bounds.

Architecture position:
    Engines -- pure calculation, no I/O.  Consumed by the fund performance
    service.

Invariants enforced:
    - Every bound is a named field of IrrSolverLimits, so each failure mode
      can be exercised on its own.
    - Float arithmetic is confined to this module.  Callers convert the
      result to a Decimal percentage.

Failure modes (all return None, none raise):
    - Fewer than two cash flows.
    - The iterate leaves [min_rate, max_rate] or becomes non-finite.
    - max_iterations reached without |NPV| or |step| under tolerance.
    - All flows on one date with no outflow to measure against, or a
      simple return outside [min_rate, max_rate].

This is a local method.  It is adequate for fund cash-flow series (tens of
points, rates in the single- to low-double-digit percent range) and makes no
attempt at global convergence.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from lending_engines.tracer import traced_engine
from lending_kernel.domain.cash_flow import CashFlow, sort_flows
from lending_kernel.logging_config import get_logger

logger = get_logger("engines.irr")


@dataclass(frozen=True)
class IrrSolverLimits:
    """Iteration and divergence bounds for the solver."""

    initial_rate: float = 0.10
    tolerance: float = 1e-6
    max_iterations: int = 100
    # Below this |NPV'(r)| the tangent is treated as flat
    derivative_floor: float = 1e-10
    # Step applied to r when the tangent is flat
    nudge: float = 0.01
    max_rate: float = 10.0
    min_rate: float = -0.99
    day_count_basis: float = 365.0

    def __post_init__(self) -> None:
        if self.min_rate <= -1.0:
            raise ValueError(f"min_rate must be > -1, got {self.min_rate}")
        if self.min_rate >= self.max_rate:
            raise ValueError(
                f"min_rate ({self.min_rate}) must be below max_rate ({self.max_rate})"
            )
        if not self.min_rate <= self.initial_rate <= self.max_rate:
            raise ValueError(
                f"initial_rate {self.initial_rate} outside [{self.min_rate}, {self.max_rate}]"
            )
        if self.tolerance <= 0 or self.derivative_floor <= 0:
            raise ValueError("tolerance and derivative_floor must be positive")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.day_count_basis <= 0:
            raise ValueError("day_count_basis must be positive")


DEFAULT_LIMITS = IrrSolverLimits()

_Term = tuple[float, float]  # (years since first flow, signed amount)


def _terms(cash_flows: Iterable[CashFlow], basis: float) -> list[_Term]:
    flows = sort_flows(cash_flows)
    if not flows:
        return []
    origin = flows[0].flow_date
    return [
        ((f.flow_date - origin).days / basis, float(f.signed_amount))
        for f in flows
    ]


def _npv(terms: Sequence[_Term], rate: float) -> float:
    base = 1.0 + rate
    return sum(amount / base ** t for t, amount in terms)


def _npv_derivative(terms: Sequence[_Term], rate: float) -> float:
    base = 1.0 + rate
    return sum(-t * amount / base ** (t + 1.0) for t, amount in terms)


def npv(
    cash_flows: Iterable[CashFlow],
    rate: float,
    limits: IrrSolverLimits = DEFAULT_LIMITS,
) -> float:
    """Net present value at ``rate``, discounting from the earliest flow."""
    return _npv(_terms(cash_flows, limits.day_count_basis), rate)


def npv_derivative(
    cash_flows: Iterable[CashFlow],
    rate: float,
    limits: IrrSolverLimits = DEFAULT_LIMITS,
) -> float:
    """Analytic d NPV / d rate."""
    return _npv_derivative(_terms(cash_flows, limits.day_count_basis), rate)


def _same_day_return(terms: Sequence[_Term]) -> float | None:
    # With zero elapsed time NPV does not depend on r; report the simple return.
    paid = -sum(a for _, a in terms if a < 0)
    received = sum(a for _, a in terms if a > 0)
    if paid <= 0:
        return None
    return received / paid - 1.0


def _within(rate: float, limits: IrrSolverLimits) -> bool:
    return math.isfinite(rate) and limits.min_rate <= rate <= limits.max_rate


@traced_engine("irr", "1.0", fingerprint_fields=("cash_flows",))
def solve_irr(
    cash_flows: Iterable[CashFlow],
    limits: IrrSolverLimits = DEFAULT_LIMITS,
) -> float | None:
    """
    Solve for the annual IRR of ``cash_flows``.

    Args:
        cash_flows: Dated, directed flows in any order.
        limits: Solver bounds.

    Returns:
        The rate as a decimal (0.10 == 10%), or None for insufficient data
        or non-convergence.
    """
    terms = _terms(cash_flows, limits.day_count_basis)
    if len(terms) < 2:
        return None

    if all(t == 0.0 for t, _ in terms):
        simple = _same_day_return(terms)
        return simple if simple is not None and _within(simple, limits) else None

    rate = limits.initial_rate
    for iteration in range(limits.max_iterations):
        try:
            value = _npv(terms, rate)
            slope = _npv_derivative(terms, rate)
        except (OverflowError, ZeroDivisionError):
            logger.debug("irr_diverged", extra={"iteration": iteration, "rate": rate})
            return None

        if abs(value) < limits.tolerance:
            return rate

        if abs(slope) < limits.derivative_floor:
            rate += limits.nudge
            if rate > limits.max_rate:
                logger.debug("irr_diverged", extra={"iteration": iteration, "rate": rate})
                return None
            continue

        next_rate = rate - value / slope
        if not _within(next_rate, limits):
            logger.debug(
                "irr_diverged",
                extra={"iteration": iteration, "rate": next_rate},
            )
            return None

        if abs(next_rate - rate) < limits.tolerance:
            return next_rate
        rate = next_rate

    logger.debug(
        "irr_not_converged",
        extra={"iterations": limits.max_iterations, "rate": rate},
    )
    return None
