"""Tests for the CashFlow value type and flow ordering."""

from datetime import date
from decimal import Decimal

import pytest

from lending_kernel.domain.cash_flow import CashFlow, FlowDirection, sort_flows


class TestCashFlow:
    def test_outflow_is_negative(self):
        flow = CashFlow.outflow(date(2024, 1, 1), Decimal("250"))

        assert flow.signed_amount == Decimal("-250")

    def test_inflow_is_positive(self):
        flow = CashFlow.inflow(date(2024, 1, 1), Decimal("250"))

        assert flow.signed_amount == Decimal("250")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            CashFlow.inflow(date(2024, 1, 1), Decimal("-1"))

    def test_non_decimal_amount_coerced(self):
        flow = CashFlow(date(2024, 1, 1), 10.5, "inflow")

        assert flow.amount == Decimal("10.5")
        assert flow.direction is FlowDirection.INFLOW


class TestSortFlows:
    def test_ascending_by_date(self):
        flows = [
            CashFlow.inflow(date(2024, 6, 1), Decimal("1")),
            CashFlow.outflow(date(2024, 1, 1), Decimal("1")),
        ]

        ordered = sort_flows(flows)

        assert [f.flow_date for f in ordered] == [date(2024, 1, 1), date(2024, 6, 1)]

    def test_outflow_first_on_same_day(self):
        flows = [
            CashFlow.inflow(date(2024, 1, 1), Decimal("1")),
            CashFlow.outflow(date(2024, 1, 1), Decimal("1")),
        ]

        ordered = sort_flows(flows)

        assert ordered[0].direction is FlowDirection.OUTFLOW
        assert isinstance(ordered, tuple)
