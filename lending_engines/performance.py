"""
Module: lending_engines.performance
Responsibility:
    Pure fund performance math: capital ratios, latency averages, cash-flow
    assembly for the IRR solver, per-investment returns, deployment
    timelines and portfolio roll-ups.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import lending_kernel domain values and db.types helpers.
    The fund performance service feeds it CommitmentRecord and
    AllocationRecord values read by the capital selector.

Invariants enforced:
    - Decimal-only arithmetic for money.  Ratios are Decimal percentages
      (75 means 75%); MOIC is a raw multiple.
    - Division by a zero denominator never raises: rates fall back to 0 and
      MOIC to None.
    - Funds whose IRR is None contribute to neither side of the
      capital-weighted portfolio IRR.

Failure modes:
    - None of the public functions raise on empty input; empty sequences
      produce zero totals, None averages or empty tuples.

Usage:
    from lending_engines.performance import build_fund_performance

    perf = build_fund_performance(
        fund_id=fund.id, fund_name=fund.name,
        total_committed=Decimal("1000000"),
        total_deployed=Decimal("750000"),
        total_returned=Decimal("100000"),
        start_date=date(2024, 1, 1), end_date=date(2024, 12, 31),
    )
    perf.deployment_rate  # Decimal("75.000000")
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from lending_engines.tracer import traced_engine
from lending_kernel.db.types import HUNDRED, ZERO, round_rate
from lending_kernel.domain.capital import AllocationRecord, CommitmentRecord
from lending_kernel.domain.cash_flow import CashFlow, sort_flows
from lending_kernel.logging_config import get_logger

logger = get_logger("engines.performance")

DAYS_PER_YEAR = Decimal("365")
DEFAULT_TOP_LIMIT = 5
DEFAULT_FUND_TYPES: tuple[str, ...] = ("private", "syndicated", "institutional")


# ----------------------------------------------------------------------
# Result types
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class FundPerformance:
    """
    Performance of one fund over an inclusive date window.

    ``irr`` is a percentage (12.5 == 12.5%); ``moic`` is a multiple.  Both are
    None when the inputs do not support them.
    """

    fund_id: UUID
    fund_name: str
    total_committed: Decimal
    total_deployed: Decimal
    total_returned: Decimal
    net_deployed: Decimal
    deployment_rate: Decimal
    return_rate: Decimal
    irr: Decimal | None
    moic: Decimal | None
    avg_deployment_days: Decimal | None
    avg_return_days: Decimal | None
    start_date: date
    end_date: date
    fund_type: str | None = None
    fund_status: str | None = None


@dataclass(frozen=True)
class FundTypeRollup:
    fund_type: str
    fund_count: int
    total_aum: Decimal
    avg_irr: Decimal | None


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregate view over every fund of one organization."""

    organization_id: str
    total_funds: int
    active_funds: int
    total_aum: Decimal
    total_committed: Decimal
    total_deployed: Decimal
    total_returned: Decimal
    portfolio_irr: Decimal | None
    portfolio_moic: Decimal | None
    by_fund_type: tuple[FundTypeRollup, ...]
    top_funds: tuple[FundPerformance, ...]


@dataclass(frozen=True)
class TimelinePoint:
    point_date: date
    allocated: Decimal
    returned: Decimal


@dataclass(frozen=True)
class InvestmentPerformance:
    loan_id: UUID
    loan_name: str
    allocated: Decimal
    returned: Decimal
    moic: Decimal
    irr: Decimal | None
    allocation_date: date
    full_return_date: date | None = None


# ----------------------------------------------------------------------
# Ratios
# ----------------------------------------------------------------------


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100``, or 0 when ``whole`` is 0."""
    if whole == ZERO:
        return ZERO
    return round_rate(part / whole * HUNDRED)


def multiple_of(part: Decimal, whole: Decimal) -> Decimal | None:
    """``part / whole``, or None when ``whole`` is 0."""
    if whole == ZERO:
        return None
    return round_rate(part / whole)


def irr_percent(rate: float | None) -> Decimal | None:
    """Convert a solver rate (0.10) to a Decimal percentage (10.000000)."""
    if rate is None:
        return None
    return round_rate(Decimal(repr(rate)) * HUNDRED)


# ----------------------------------------------------------------------
# Latency
# ----------------------------------------------------------------------


def average_days(spans: Iterable[tuple[date, date]]) -> Decimal | None:
    """Mean whole-day distance over ``(earlier, later)`` pairs; None if empty."""
    days = [(later - earlier).days for earlier, later in spans]
    if not days:
        return None
    return round_rate(Decimal(sum(days)) / Decimal(len(days)))


def pair_allocations_with_commitments(
    allocations: Sequence[AllocationRecord],
    commitments: Sequence[CommitmentRecord],
) -> list[tuple[date, date]]:
    """
    Pair each allocation with the commitment whose capital it deployed.

    An allocation that names its commitment uses that commitment.  One that
    does not uses the latest commitment dated on or before the allocation.
    Allocations with neither are left out.

    Returns:
        ``(commitment_date, allocation_date)`` pairs in allocation order.
    """
    by_id = {c.commitment_id: c for c in commitments}
    ordered = sorted(commitments, key=lambda c: (c.commitment_date, str(c.commitment_id)))
    pairs: list[tuple[date, date]] = []
    for allocation in allocations:
        commitment = by_id.get(allocation.commitment_id) if allocation.commitment_id else None
        if commitment is None:
            for candidate in reversed(ordered):
                if candidate.commitment_date <= allocation.allocation_date:
                    commitment = candidate
                    break
        if commitment is not None:
            pairs.append((commitment.commitment_date, allocation.allocation_date))
    return pairs


def return_spans(allocations: Iterable[AllocationRecord]) -> list[tuple[date, date]]:
    return [
        (a.allocation_date, a.full_return_date)
        for a in allocations
        if a.full_return_date is not None
    ]


# ----------------------------------------------------------------------
# Cash flows
# ----------------------------------------------------------------------


def capital_cash_flows(
    commitments: Iterable[CommitmentRecord],
    completed_returns: Iterable[AllocationRecord],
) -> tuple[CashFlow, ...]:
    """Commitments as outflows, completed returns as inflows, ascending by date."""
    flows = [CashFlow.outflow(c.commitment_date, c.amount) for c in commitments]
    flows.extend(
        CashFlow.inflow(a.full_return_date, a.returned)
        for a in completed_returns
        if a.full_return_date is not None
    )
    return sort_flows(flows)


# ----------------------------------------------------------------------
# Fund result
# ----------------------------------------------------------------------


def build_fund_performance(
    *,
    fund_id: UUID,
    fund_name: str,
    total_committed: Decimal,
    total_deployed: Decimal,
    total_returned: Decimal,
    start_date: date,
    end_date: date,
    irr: Decimal | None = None,
    avg_deployment_days: Decimal | None = None,
    avg_return_days: Decimal | None = None,
    fund_type: str | None = None,
    fund_status: str | None = None,
) -> FundPerformance:
    return FundPerformance(
        fund_id=fund_id,
        fund_name=fund_name,
        total_committed=total_committed,
        total_deployed=total_deployed,
        total_returned=total_returned,
        net_deployed=total_deployed - total_returned,
        deployment_rate=percent_of(total_deployed, total_committed),
        return_rate=percent_of(total_returned, total_deployed),
        irr=irr,
        moic=multiple_of(total_returned, total_deployed),
        avg_deployment_days=avg_deployment_days,
        avg_return_days=avg_return_days,
        start_date=start_date,
        end_date=end_date,
        fund_type=fund_type,
        fund_status=fund_status,
    )


# ----------------------------------------------------------------------
# Investments
# ----------------------------------------------------------------------


def investment_moic(allocated: Decimal, returned: Decimal) -> Decimal:
    if allocated == ZERO:
        return ZERO
    return round_rate(returned / allocated)


def annualized_return(
    moic: Decimal,
    allocation_date: date,
    full_return_date: date | None,
) -> Decimal | None:
    """
    Simple annualised return ``(moic ** (1 / years) - 1) * 100``.

    None when the investment has not fully returned, when no time elapsed,
    or when the multiple is not positive.
    """
    if full_return_date is None or moic <= ZERO:
        return None
    years = Decimal((full_return_date - allocation_date).days) / DAYS_PER_YEAR
    if years <= ZERO:
        return None
    try:
        growth = moic ** (Decimal(1) / years)
    except (InvalidOperation, OverflowError):
        logger.debug(
            "annualized_return_overflow",
            extra={"moic": str(moic), "years": str(years)},
        )
        return None
    return round_rate((growth - 1) * HUNDRED)


def investment_performance(allocation: AllocationRecord) -> InvestmentPerformance:
    moic = investment_moic(allocation.allocated, allocation.returned)
    loan_name = allocation.loan_name or f"Loan {str(allocation.loan_id)[:8]}"
    return InvestmentPerformance(
        loan_id=allocation.loan_id,
        loan_name=loan_name,
        allocated=allocation.allocated,
        returned=allocation.returned,
        moic=moic,
        irr=annualized_return(moic, allocation.allocation_date, allocation.full_return_date),
        allocation_date=allocation.allocation_date,
        full_return_date=allocation.full_return_date,
    )


def rank_investments(
    allocations: Iterable[AllocationRecord],
    limit: int = DEFAULT_TOP_LIMIT,
) -> list[InvestmentPerformance]:
    """Per-investment results sorted by MOIC descending, at most ``limit``."""
    if limit <= 0:
        return []
    results = [investment_performance(a) for a in allocations]
    results.sort(key=lambda r: r.moic, reverse=True)
    return results[:limit]


# ----------------------------------------------------------------------
# Timeline
# ----------------------------------------------------------------------


def build_timeline(
    allocations: Iterable[AllocationRecord],
    returns: Iterable[AllocationRecord],
) -> list[TimelinePoint]:
    """
    One point per calendar day, ascending.

    ``allocations`` contribute their allocated amount on the allocation date;
    ``returns`` contribute their returned amount on the full-return date.
    """
    allocated: dict[date, Decimal] = defaultdict(lambda: ZERO)
    returned: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for a in allocations:
        allocated[a.allocation_date] += a.allocated
    for r in returns:
        if r.full_return_date is not None:
            returned[r.full_return_date] += r.returned
    days = sorted(set(allocated) | set(returned))
    return [
        TimelinePoint(point_date=d, allocated=allocated.get(d, ZERO), returned=returned.get(d, ZERO))
        for d in days
    ]


# ----------------------------------------------------------------------
# Portfolio
# ----------------------------------------------------------------------


def weighted_irr(performances: Iterable[FundPerformance]) -> Decimal | None:
    """
    Capital-weighted IRR: ``sum(irr * deployed) / sum(deployed)``.

    Funds with a None IRR are skipped entirely.  None when the remaining
    weight is zero.
    """
    numerator = ZERO
    weight = ZERO
    for p in performances:
        if p.irr is None:
            continue
        numerator += p.irr * p.total_deployed
        weight += p.total_deployed
    if weight == ZERO:
        return None
    return round_rate(numerator / weight)


def _mean(values: Sequence[Decimal]) -> Decimal | None:
    if not values:
        return None
    return round_rate(sum(values, ZERO) / Decimal(len(values)))


def rank_funds(
    performances: Iterable[FundPerformance],
    limit: int = DEFAULT_TOP_LIMIT,
) -> tuple[FundPerformance, ...]:
    """
    Order by MOIC descending, ties by IRR descending.

    A None MOIC sorts after every fund with a value; a None IRR sorts last
    within its MOIC tie.
    """

    def key(p: FundPerformance) -> tuple:
        return (
            p.moic is None,
            -(p.moic or ZERO),
            p.irr is None,
            -(p.irr or ZERO),
        )

    return tuple(sorted(performances, key=key)[: max(limit, 0)])


def rollup_by_fund_type(
    performances: Sequence[FundPerformance],
    fund_types: Sequence[str] = DEFAULT_FUND_TYPES,
) -> tuple[FundTypeRollup, ...]:
    """Per-category count, AUM and mean IRR; empty categories are omitted."""
    rollups = []
    for fund_type in fund_types:
        members = [p for p in performances if p.fund_type == fund_type]
        if not members:
            continue
        rollups.append(
            FundTypeRollup(
                fund_type=fund_type,
                fund_count=len(members),
                total_aum=sum((p.net_deployed for p in members), ZERO),
                avg_irr=_mean([p.irr for p in members if p.irr is not None]),
            )
        )
    return tuple(rollups)


@traced_engine("portfolio_summary", "1.0", fingerprint_fields=("organization_id",))
def summarize_portfolio(
    *,
    organization_id: str,
    performances: Sequence[FundPerformance],
    fund_types: Sequence[str] = DEFAULT_FUND_TYPES,
    top_limit: int = DEFAULT_TOP_LIMIT,
    active_status: str = "active",
) -> PortfolioSummary | None:
    """
    Roll individual fund results up to the organization.

    Returns None when ``performances`` is empty.
    """
    if not performances:
        return None

    total_committed = sum((p.total_committed for p in performances), ZERO)
    total_deployed = sum((p.total_deployed for p in performances), ZERO)
    total_returned = sum((p.total_returned for p in performances), ZERO)

    return PortfolioSummary(
        organization_id=organization_id,
        total_funds=len(performances),
        active_funds=sum(1 for p in performances if p.fund_status == active_status),
        total_aum=sum((p.net_deployed for p in performances), ZERO),
        total_committed=total_committed,
        total_deployed=total_deployed,
        total_returned=total_returned,
        portfolio_irr=weighted_irr(performances),
        portfolio_moic=multiple_of(total_returned, total_deployed),
        by_fund_type=rollup_by_fund_type(performances, fund_types),
        top_funds=rank_funds(performances, top_limit),
    )
