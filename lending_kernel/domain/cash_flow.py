"""
Cash-flow value type used by the IRR solver.

A CashFlow is a dated amount of capital moving out of the fund (commitment,
deployment) or back into it (return).  Amounts are non-negative Decimals;
the direction carries the sign.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class FlowDirection(str, Enum):
    OUTFLOW = "outflow"
    INFLOW = "inflow"


@dataclass(frozen=True)
class CashFlow:
    """
    One dated, directed monetary flow.

    Guarantees:
        - ``amount`` is a Decimal >= 0.
        - ``signed_amount`` is negative for outflows, positive for inflows.
    """

    flow_date: date
    amount: Decimal
    direction: FlowDirection

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError(f"Cash flow amount must be non-negative, got {self.amount}")
        if not isinstance(self.direction, FlowDirection):
            object.__setattr__(self, "direction", FlowDirection(self.direction))

    @property
    def signed_amount(self) -> Decimal:
        if self.direction is FlowDirection.OUTFLOW:
            return -self.amount
        return self.amount

    @classmethod
    def outflow(cls, flow_date: date, amount: Decimal) -> "CashFlow":
        return cls(flow_date, amount, FlowDirection.OUTFLOW)

    @classmethod
    def inflow(cls, flow_date: date, amount: Decimal) -> "CashFlow":
        return cls(flow_date, amount, FlowDirection.INFLOW)


def sort_flows(flows) -> tuple[CashFlow, ...]:
    """Order flows ascending by date; outflows before inflows on the same day."""
    return tuple(
        sorted(
            flows,
            key=lambda f: (f.flow_date, f.direction is FlowDirection.INFLOW),
        )
    )
