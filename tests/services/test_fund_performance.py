"""
Tests for FundPerformanceService against the database.

Covers:
- Single-fund ratios, latency averages and IRR
- Window resolution (inception, earliest activity, explicit bounds)
- Portfolio summary, fund comparison, deployment timeline, top investments
- Not-found behaviour
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from lending_kernel.models.funds import CommitmentStatus, FundStatus, FundType
from lending_services.fund_performance import FundPerformanceService


@pytest.fixture
def service(session, clock):
    return FundPerformanceService(session, clock)


@pytest.fixture
def reference_fund(make_fund, make_commitment, make_loan, make_allocation):
    """1M committed, 750k deployed across two loans, 100k returned."""
    fund = make_fund(target_return=Decimal("12"))
    commitment = make_commitment(fund, "1000000", date(2024, 1, 1))
    maple = make_loan(name="Maple St")
    oak = make_loan(name="Oak Ave")
    # Linked to its commitment: 10 days
    make_allocation(fund, maple.id, "500000", date(2024, 1, 11), commitment=commitment)
    # Unlinked, paired with the latest earlier commitment: 20 days; returned after 90 days
    make_allocation(
        fund, oak.id, "250000", date(2024, 1, 21),
        returned="100000", full_return_date=date(2024, 4, 20),
    )
    return fund


class TestCalculateFundPerformance:
    def test_reference_ratios(self, service, reference_fund):
        perf = service.calculate_fund_performance(reference_fund.id)

        assert perf.fund_name == "Fund I"
        assert perf.total_committed == Decimal("1000000")
        assert perf.total_deployed == Decimal("750000")
        assert perf.total_returned == Decimal("100000")
        assert perf.net_deployed == Decimal("650000")
        assert perf.deployment_rate == Decimal("75")
        assert perf.return_rate == Decimal("13.333333")
        assert perf.moic == Decimal("0.133333")
        assert perf.fund_type == "private"
        assert perf.fund_status == "active"

    def test_latency_averages(self, service, reference_fund):
        perf = service.calculate_fund_performance(reference_fund.id)

        assert perf.avg_deployment_days == Decimal("15")
        assert perf.avg_return_days == Decimal("90")

    def test_default_window_from_inception_to_today(self, service, reference_fund):
        perf = service.calculate_fund_performance(str(reference_fund.id))

        assert perf.start_date == date(2024, 1, 1)
        assert perf.end_date == date(2024, 6, 30)

    def test_window_without_inception_starts_at_first_activity(
        self, service, make_fund, make_commitment,
    ):
        fund = make_fund(inception_date=None)
        make_commitment(fund, "1000", date(2024, 3, 5))

        perf = service.calculate_fund_performance(fund.id)

        assert perf.start_date == date(2024, 3, 5)

    def test_window_without_any_activity_is_single_day(self, service, make_fund):
        fund = make_fund(inception_date=None)

        perf = service.calculate_fund_performance(fund.id)

        assert perf.start_date == perf.end_date == date(2024, 6, 30)
        assert perf.moic is None
        assert perf.irr is None
        assert perf.deployment_rate == Decimal("0")

    def test_explicit_window_filters_totals(self, service, reference_fund):
        perf = service.calculate_fund_performance(
            reference_fund.id, start_date="2024-01-15", end_date="2024-03-31",
        )

        assert perf.total_committed == Decimal("0")
        assert perf.total_deployed == Decimal("250000")
        # Returns count for allocations made by the end date, whenever they came back
        assert perf.total_returned == Decimal("100000")
        assert perf.deployment_rate == Decimal("0")

    def test_inactive_commitments_not_counted(self, service, make_fund, make_commitment):
        fund = make_fund()
        make_commitment(fund, "1000", date(2024, 1, 2))
        make_commitment(fund, "9000", date(2024, 1, 2), status=CommitmentStatus.PENDING)
        make_commitment(fund, "9000", date(2024, 1, 2), status=CommitmentStatus.CANCELLED)

        perf = service.calculate_fund_performance(fund.id)

        assert perf.total_committed == Decimal("1000")

    def test_irr_from_commitments_and_returns(
        self, service, make_fund, make_commitment, make_loan, make_allocation,
    ):
        fund = make_fund(inception_date=date(2023, 1, 1))
        make_commitment(fund, "1000", date(2023, 1, 1))
        loan = make_loan()
        make_allocation(
            fund, loan.id, "1000", date(2023, 1, 1),
            returned="1100", full_return_date=date(2024, 1, 1),
        )

        perf = service.calculate_fund_performance(fund.id)

        assert perf.irr is not None
        assert abs(perf.irr - Decimal("10")) < Decimal("0.01")
        assert perf.moic == Decimal("1.1")

    def test_irr_none_without_returns(self, service, make_fund, make_commitment):
        fund = make_fund()
        make_commitment(fund, "1000", date(2024, 1, 1))
        make_commitment(fund, "1000", date(2024, 2, 1))

        assert service.calculate_fund_performance(fund.id).irr is None

    def test_unknown_fund_is_none(self, service, captured_logs):
        assert service.calculate_fund_performance(uuid4()) is None
        assert any(r["message"] == "fund_not_found" for r in captured_logs())

    def test_result_is_recomputed_each_call(self, service, reference_fund, make_commitment):
        first = service.calculate_fund_performance(reference_fund.id)
        make_commitment(reference_fund, "500000", date(2024, 2, 1))

        second = service.calculate_fund_performance(reference_fund.id)

        assert first.total_committed == Decimal("1000000")
        assert second.total_committed == Decimal("1500000")
        assert second.deployment_rate == Decimal("50")


class TestPortfolioSummary:
    def test_rolls_up_organization_funds(
        self, service, make_fund, make_commitment, make_loan, make_allocation,
    ):
        loan = make_loan()
        growth = make_fund(name="Growth", fund_type=FundType.PRIVATE)
        make_commitment(growth, "1000", date(2024, 1, 1))
        make_allocation(growth, loan.id, "800", date(2024, 2, 1), returned="200")

        income = make_fund(
            name="Income", fund_type=FundType.INSTITUTIONAL, status=FundStatus.CLOSED,
        )
        make_commitment(income, "500", date(2024, 1, 1))
        make_allocation(
            income, loan.id, "200", date(2024, 1, 1),
            returned="300", full_return_date=date(2024, 5, 1),
        )

        other = make_fund(name="Elsewhere", organization_id="org-other")
        make_commitment(other, "99999", date(2024, 1, 1))

        summary = service.get_portfolio_summary("org-test")

        assert summary.organization_id == "org-test"
        assert summary.total_funds == 2
        assert summary.active_funds == 1
        assert summary.total_committed == Decimal("1500")
        assert summary.total_deployed == Decimal("1000")
        assert summary.total_returned == Decimal("500")
        assert summary.total_aum == Decimal("500")
        assert summary.portfolio_moic == Decimal("0.5")
        assert [f.fund_name for f in summary.top_funds] == ["Income", "Growth"]
        assert [r.fund_type for r in summary.by_fund_type] == ["private", "institutional"]
        # Growth has no returns in its window, so only Income carries an IRR
        assert summary.portfolio_irr == service.calculate_fund_performance(income.id).irr

    def test_top_funds_limited(self, session, clock, make_fund):
        for i in range(7):
            make_fund(name=f"Fund {i}")

        summary = FundPerformanceService(session, clock, top_limit=5).get_portfolio_summary("org-test")

        assert summary.total_funds == 7
        assert len(summary.top_funds) == 5

    def test_organization_without_funds_is_none(self, service):
        assert service.get_portfolio_summary("nobody") is None


class TestFundComparison:
    def test_input_order_kept_unknown_dropped(self, service, make_fund):
        b = make_fund(name="B")
        a = make_fund(name="A")

        results = service.get_fund_comparison([b.id, uuid4(), a.id])

        assert [r.fund_name for r in results] == ["B", "A"]

    def test_malformed_id_treated_as_unknown(self, service, make_fund):
        fund = make_fund(name="Real")

        results = service.get_fund_comparison([fund.id, "no-such-fund"])

        assert [r.fund_name for r in results] == ["Real"]

    def test_malformed_id_reads_as_not_found(self, service):
        assert service.calculate_fund_performance("no-such-fund") is None
        assert service.get_deployment_timeline("no-such-fund") == []
        assert service.get_top_investments("no-such-fund") == []

    def test_shared_window(self, service, reference_fund, make_fund):
        other = make_fund(name="Other")

        results = service.get_fund_comparison(
            [reference_fund.id, other.id], start_date="2024-01-01", end_date="2024-01-15",
        )

        assert all(r.start_date == date(2024, 1, 1) for r in results)
        assert all(r.end_date == date(2024, 1, 15) for r in results)
        assert results[0].total_deployed == Decimal("500000")


class TestDeploymentTimeline:
    @pytest.fixture
    def timeline_fund(self, make_fund, make_loan, make_allocation):
        fund = make_fund()
        loans = [make_loan(name=f"L{i}") for i in range(3)]
        make_allocation(fund, loans[0].id, "100", date(2024, 1, 5))
        make_allocation(fund, loans[1].id, "250", date(2024, 1, 5))
        make_allocation(
            fund, loans[2].id, "50", date(2024, 1, 2),
            returned="50", full_return_date=date(2024, 3, 1),
        )
        return fund

    def test_points_per_day(self, service, timeline_fund):
        points = service.get_deployment_timeline(timeline_fund.id)

        assert [(p.point_date, p.allocated, p.returned) for p in points] == [
            (date(2024, 1, 2), Decimal("50"), Decimal("0")),
            (date(2024, 1, 5), Decimal("350"), Decimal("0")),
            (date(2024, 3, 1), Decimal("0"), Decimal("50")),
        ]

    def test_window_limits_points(self, service, timeline_fund):
        points = service.get_deployment_timeline(timeline_fund.id, "2024-01-03", "2024-02-28")

        assert [p.point_date for p in points] == [date(2024, 1, 5)]

    def test_unknown_fund_is_empty(self, service):
        assert service.get_deployment_timeline(uuid4()) == []


class TestTopInvestments:
    def test_sorted_by_moic_and_limited(self, service, make_fund, make_loan, make_allocation):
        fund = make_fund()
        for name, returned in (("Low", "50"), ("High", "300"), ("Mid", "120")):
            loan = make_loan(name=name)
            make_allocation(fund, loan.id, "100", date(2024, 1, 1), returned=returned)

        top = service.get_top_investments(fund.id, limit=2)

        assert [t.loan_name for t in top] == ["High", "Mid"]
        assert top[0].moic == Decimal("3")

    def test_default_limit_is_five(self, service, make_fund, make_loan, make_allocation):
        fund = make_fund()
        for i in range(7):
            make_allocation(fund, make_loan(name=f"L{i}").id, "100", date(2024, 1, 1))

        assert len(service.get_top_investments(fund.id)) == 5

    def test_default_limit_independent_of_top_funds(
        self, session, clock, make_fund, make_loan, make_allocation,
    ):
        fund = make_fund()
        for i in range(4):
            make_allocation(fund, make_loan(name=f"L{i}").id, "100", date(2024, 1, 1))
        service = FundPerformanceService(session, clock, top_limit=1, top_investments=3)

        assert len(service.get_top_investments(fund.id)) == 3

    def test_allocation_without_loan_dropped(self, service, make_fund, make_loan, make_allocation):
        fund = make_fund()
        make_allocation(fund, make_loan(name="Real").id, "100", date(2024, 1, 1))
        make_allocation(fund, uuid4(), "100", date(2024, 1, 1), returned="500")

        top = service.get_top_investments(fund.id)

        assert [t.loan_name for t in top] == ["Real"]

    def test_unnamed_loan_gets_placeholder(self, service, make_fund, make_loan, make_allocation):
        fund = make_fund()
        loan = make_loan(name=None)
        make_allocation(fund, loan.id, "100", date(2024, 1, 1))

        top = service.get_top_investments(fund.id)

        assert top[0].loan_name == f"Loan {str(loan.id)[:8]}"

    def test_annualized_return_for_full_returns(self, service, make_fund, make_loan, make_allocation):
        fund = make_fund()
        make_allocation(
            fund, make_loan().id, "1000", date(2023, 1, 1),
            returned="1100", full_return_date=date(2024, 1, 1),
        )

        top = service.get_top_investments(fund.id)

        assert abs(top[0].irr - Decimal("10")) < Decimal("0.0001")

    def test_unknown_fund_is_empty(self, service):
        assert service.get_top_investments(uuid4()) == []
