"""
Tests for KPI reads over stored snapshots.

Covers:
- Inclusive windows, ascending order
- Default trailing window ending today
- Empty and inverted windows
- Reads never create snapshots
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from lending_kernel.exceptions import InvalidSnapshotDateError
from lending_kernel.models.snapshots import FundSnapshot, LoanSnapshot
from lending_kernel.selectors.kpi_selector import KpiSelector
from lending_kernel.services.snapshot_service import SnapshotAggregator


@pytest.fixture
def aggregator(session, clock):
    return SnapshotAggregator(session, clock)


@pytest.fixture
def kpis(session, clock):
    return KpiSelector(session, clock)


def _fill(aggregator, method: str, start: date, days: int) -> None:
    for offset in range(days):
        getattr(aggregator, method)(start + timedelta(days=offset))


class TestWindows:
    def test_inclusive_bounds_ascending(self, aggregator, kpis):
        _fill(aggregator, "compute_fund_snapshot", date(2024, 6, 1), 10)

        rows = kpis.get_fund_kpis("2024-06-03", "2024-06-07")

        assert [r.snapshot_date for r in rows] == [
            date(2024, 6, 3),
            date(2024, 6, 4),
            date(2024, 6, 5),
            date(2024, 6, 6),
            date(2024, 6, 7),
        ]

    def test_default_window_is_trailing_thirty_days(self, aggregator, kpis):
        # Clock "today" is 2024-06-30; 2024-05-31 is the first day in range
        _fill(aggregator, "compute_loan_snapshot", date(2024, 5, 25), 40)

        rows = kpis.get_loan_kpis()

        assert rows[0].snapshot_date == date(2024, 5, 31)
        assert rows[-1].snapshot_date == date(2024, 6, 30)
        assert len(rows) == 31

    def test_configured_window_length(self, session, clock, aggregator):
        _fill(aggregator, "compute_payment_snapshot", date(2024, 6, 20), 11)

        rows = KpiSelector(session, clock, window_days=3).get_collections_kpis()

        assert [r.snapshot_date for r in rows] == [
            date(2024, 6, 27),
            date(2024, 6, 28),
            date(2024, 6, 29),
            date(2024, 6, 30),
        ]

    def test_gaps_are_absent_not_filled(self, aggregator, kpis, session):
        aggregator.compute_inspection_snapshot(date(2024, 6, 1))
        aggregator.compute_inspection_snapshot(date(2024, 6, 5))

        rows = kpis.get_inspection_kpis("2024-06-01", "2024-06-10")

        assert [r.snapshot_date for r in rows] == [date(2024, 6, 1), date(2024, 6, 5)]

    def test_empty_window(self, kpis):
        assert kpis.get_fund_kpis("2024-01-01", "2024-01-31") == []

    def test_inverted_window_is_empty(self, aggregator, kpis):
        aggregator.compute_fund_snapshot(date(2024, 6, 15))

        assert kpis.get_fund_kpis("2024-06-20", "2024-06-10") == []

    def test_reads_do_not_compute(self, kpis, session):
        kpis.get_fund_kpis()
        kpis.get_loan_kpis()

        assert session.execute(select(func.count(FundSnapshot.id))).scalar_one() == 0
        assert session.execute(select(func.count(LoanSnapshot.id))).scalar_one() == 0

    def test_invalid_bound_rejected(self, kpis):
        with pytest.raises(InvalidSnapshotDateError):
            kpis.get_fund_kpis("last week")

    def test_negative_window_rejected(self, session, clock):
        with pytest.raises(ValueError):
            KpiSelector(session, clock, window_days=-1)


class TestSnapshotsForDate:
    def test_missing_variants_are_none(self, aggregator, kpis, make_fund, make_commitment):
        fund = make_fund()
        make_commitment(fund, "5000", date(2024, 6, 1))
        aggregator.compute_fund_snapshot(date(2024, 6, 30))

        snapshots = kpis.get_snapshots_for_date("2024-06-30")

        assert snapshots.fund.total_commitments == Decimal("5000")
        assert snapshots.loan is None
        assert not snapshots.is_complete
