"""
lending_services.fund_performance -- Fund and portfolio performance reads.

Responsibility:
    Resolve the reporting window, read capital totals and rows through the
    CapitalSelector, and hand them to the pure performance and IRR engines.
    Exposes the performance read API: single-fund performance, portfolio
    summary, fund comparison, deployment timeline and top investments.

Architecture position:
    Services -- stateless orchestration over kernel selectors + engines.
    Read only: never flushes, never commits, never caches.  Every call
    recomputes from current source data.

Invariants enforced:
    - Money stays Decimal end to end; the IRR rate is the only float and is
      converted to a Decimal percentage before it leaves this module.
    - Default window: start = fund inception date, end = today from the
      injected Clock.  A fund with no inception date starts at its first
      commitment or allocation.

Failure modes:
    - Unknown or malformed fund id -> None (calculate_fund_performance) or
      [] (timeline, top investments).  Not-found is never an exception here.
    - InvalidSnapshotDateError for an unparseable start or end date.

Usage:
    service = FundPerformanceService(session, clock=SystemClock())
    perf = service.calculate_fund_performance(fund_id)
    if perf is not None:
        print(perf.deployment_rate, perf.irr)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from lending_engines.irr import DEFAULT_LIMITS, IrrSolverLimits, solve_irr
from lending_engines.performance import (
    DEFAULT_FUND_TYPES,
    DEFAULT_TOP_LIMIT,
    FundPerformance,
    InvestmentPerformance,
    PortfolioSummary,
    TimelinePoint,
    average_days,
    build_fund_performance,
    build_timeline,
    capital_cash_flows,
    irr_percent,
    pair_allocations_with_commitments,
    rank_investments,
    return_spans,
    summarize_portfolio,
)
from lending_kernel.domain.calendar import coerce_date
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.logging_config import LogContext, get_logger
from lending_kernel.models.funds import Fund, FundStatus
from lending_kernel.selectors.capital_selector import CapitalSelector

logger = get_logger("services.fund_performance")


def _as_uuid(value: UUID | str) -> UUID | None:
    """Parse a fund id; None when it is not a UUID at all."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class FundPerformanceService:
    """
    Performance calculator for funds and portfolios.

    Contract:
        Receives a Session via constructor injection.  Read only.
    Guarantees:
        - Returned objects are frozen dataclasses from
          lending_engines.performance.
        - Results for the same source data and window are identical.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        irr_limits: IrrSolverLimits = DEFAULT_LIMITS,
        top_limit: int = DEFAULT_TOP_LIMIT,
        top_investments: int = DEFAULT_TOP_LIMIT,
        fund_types: Sequence[str] = DEFAULT_FUND_TYPES,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._irr_limits = irr_limits
        self._top_limit = top_limit
        self._top_investments = top_investments
        self._fund_types = tuple(fund_types)
        self._capital = CapitalSelector(session)

    # ------------------------------------------------------------------
    # Single fund
    # ------------------------------------------------------------------

    def calculate_fund_performance(
        self,
        fund_id: UUID | str,
        start_date: Any = None,
        end_date: Any = None,
    ) -> FundPerformance | None:
        """
        Performance of one fund over ``[start_date, end_date]``.

        Returns:
            FundPerformance, or None when the fund does not exist.
        """
        fund = self._get_fund(fund_id)
        if fund is None:
            logger.info("fund_not_found", extra={"fund_id": str(fund_id)})
            return None
        return self._performance_for(fund, start_date, end_date)

    def _get_fund(self, fund_id: UUID | str) -> Fund | None:
        parsed = _as_uuid(fund_id)
        if parsed is None:
            return None
        return self._capital.get_fund(parsed)

    def _window(self, fund: Fund, start_date: Any, end_date: Any) -> tuple[date, date]:
        end = coerce_date(end_date, default=self._clock.today())
        default_start = fund.inception_date or self._capital.earliest_activity(fund.id) or end
        start = coerce_date(start_date, default=default_start)
        return start, end

    def _performance_for(self, fund: Fund, start_date: Any, end_date: Any) -> FundPerformance:
        start, end = self._window(fund, start_date, end_date)

        with LogContext.bind(fund_id=fund.id):
            committed = self._capital.committed_total(fund.id, start, end)
            deployed = self._capital.deployed_total(fund.id, start, end)
            returned = self._capital.returned_total(fund.id, end)

            allocations_to_end = self._capital.allocations(fund.id, allocated_to=end)
            deployment_days = average_days(
                pair_allocations_with_commitments(
                    allocations_to_end,
                    self._capital.active_commitments(fund.id),
                )
            )
            return_days = average_days(return_spans(allocations_to_end))

            flows = capital_cash_flows(
                self._capital.active_commitments(fund.id, start, end),
                self._capital.returns_in_window(fund.id, start, end),
            )
            rate = solve_irr(cash_flows=flows, limits=self._irr_limits)

            performance = build_fund_performance(
                fund_id=fund.id,
                fund_name=fund.name,
                total_committed=committed,
                total_deployed=deployed,
                total_returned=returned,
                start_date=start,
                end_date=end,
                irr=irr_percent(rate),
                avg_deployment_days=deployment_days,
                avg_return_days=return_days,
                fund_type=fund.fund_type,
                fund_status=fund.status,
            )
            logger.info(
                "fund_performance_calculated",
                extra={
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "cash_flow_count": len(flows),
                    "irr_converged": rate is not None,
                    "moic": performance.moic,
                },
            )
        return performance

    # ------------------------------------------------------------------
    # Many funds
    # ------------------------------------------------------------------

    def get_portfolio_summary(self, organization_id: str) -> PortfolioSummary | None:
        """Roll-up of every fund of ``organization_id``; None when it has no funds."""
        funds = self._capital.funds_for_organization(organization_id)
        if not funds:
            logger.info("portfolio_empty", extra={"organization_id": organization_id})
            return None
        performances = [self._performance_for(fund, None, None) for fund in funds]
        return summarize_portfolio(
            organization_id=organization_id,
            performances=performances,
            fund_types=self._fund_types,
            top_limit=self._top_limit,
            active_status=FundStatus.ACTIVE.value,
        )

    def get_fund_comparison(
        self,
        fund_ids: Iterable[UUID | str],
        start_date: Any = None,
        end_date: Any = None,
    ) -> list[FundPerformance]:
        """Performance per fund in input order; unknown funds are dropped."""
        results = []
        for fund_id in fund_ids:
            performance = self.calculate_fund_performance(fund_id, start_date, end_date)
            if performance is not None:
                results.append(performance)
        return results

    # ------------------------------------------------------------------
    # Allocation detail
    # ------------------------------------------------------------------

    def get_deployment_timeline(
        self,
        fund_id: UUID | str,
        start_date: Any = None,
        end_date: Any = None,
    ) -> list[TimelinePoint]:
        fund = self._get_fund(fund_id)
        if fund is None:
            return []
        start, end = self._window(fund, start_date, end_date)
        return build_timeline(
            self._capital.allocations(fund.id, allocated_from=start, allocated_to=end),
            self._capital.returns_in_window(fund.id, start, end),
        )

    def get_top_investments(
        self,
        fund_id: UUID | str,
        limit: int | None = None,
    ) -> list[InvestmentPerformance]:
        """Best allocations of the fund by MOIC, at most ``limit`` (default: the configured top-investments count)."""
        fund = self._get_fund(fund_id)
        if fund is None:
            return []
        return rank_investments(
            self._capital.allocations_with_loans(fund.id),
            self._top_investments if limit is None else limit,
        )
