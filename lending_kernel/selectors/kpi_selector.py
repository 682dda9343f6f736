"""
Module: lending_kernel.selectors.kpi_selector
Responsibility: Read-only KPI projections over stored snapshot rows for
    dashboard charts.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Never computes or writes snapshots.  A date with no stored row is
      simply absent from the result.
    - Windows are inclusive on both ends and results ascend by date.
    - Default window: the trailing ``window_days`` days through today.

Failure modes:
    - InvalidSnapshotDateError for an unparseable start/end.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from lending_kernel.domain.calendar import coerce_date, trailing_window
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.snapshots import SnapshotVariant
from lending_kernel.models.snapshots import (
    SNAPSHOT_MODELS,
    FundSnapshot,
    InspectionSnapshot,
    LoanSnapshot,
    PaymentSnapshot,
    SnapshotSet,
)
from lending_kernel.selectors.base import BaseSelector

DEFAULT_WINDOW_DAYS = 30


class KpiSelector(BaseSelector):
    """Windowed reads of the four snapshot tables."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        super().__init__(session)
        if window_days < 0:
            raise ValueError(f"window_days must be >= 0, got {window_days}")
        self._clock = clock or SystemClock()
        self._window_days = window_days

    def get_fund_kpis(self, start: Any = None, end: Any = None) -> list[FundSnapshot]:
        return self._window(SnapshotVariant.FUND, start, end)

    def get_loan_kpis(self, start: Any = None, end: Any = None) -> list[LoanSnapshot]:
        return self._window(SnapshotVariant.LOAN, start, end)

    def get_collections_kpis(self, start: Any = None, end: Any = None) -> list[PaymentSnapshot]:
        return self._window(SnapshotVariant.PAYMENT, start, end)

    def get_inspection_kpis(self, start: Any = None, end: Any = None) -> list[InspectionSnapshot]:
        return self._window(SnapshotVariant.INSPECTION, start, end)

    def get_snapshots_for_date(self, snapshot_date: Any) -> SnapshotSet:
        """All stored variants for one date; missing variants are None."""
        day = coerce_date(snapshot_date, default=self._clock.today())
        rows = {
            variant.value: self.session.execute(
                select(model).where(model.snapshot_date == day)
            ).scalar_one_or_none()
            for variant, model in SNAPSHOT_MODELS.items()
        }
        return SnapshotSet(snapshot_date=day, **rows)

    def _window(self, variant: SnapshotVariant, start: Any, end: Any) -> list:
        start_date, end_date = trailing_window(
            self._clock.today(), self._window_days, start=start, end=end,
        )
        if start_date > end_date:
            return []
        model = SNAPSHOT_MODELS[variant]
        return list(
            self.session.execute(
                select(model)
                .where(model.snapshot_date >= start_date, model.snapshot_date <= end_date)
                .order_by(model.snapshot_date.asc())
            ).scalars()
        )
