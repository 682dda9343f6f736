"""
SnapshotAggregator -- daily fund / loan / payment / inspection aggregates.

Responsibility:
    Recomputes a snapshot variant for one calendar date from the source
    tables and upserts the row keyed by that date.  Two entry points feed it:
    ``compute_all`` (scheduled batch, the correctness backstop) and
    ``compute_from_event`` (incremental, recomputes only the variants the
    event type affects).

Architecture position:
    Kernel > Services.  Uses the EventIngestionLedger for idempotent event
    capture and db.upsert for the atomic per-date write.

Invariants enforced:
    - Exactly one row per (variant, snapshot_date): the write is a single
      INSERT ... ON CONFLICT (snapshot_date) DO UPDATE.
    - Each metric is its own query.  They share the caller's transaction but
      are not read under one serializable snapshot, so two metrics may see
      slightly different source states.
    - compute_from_event always ingests first, including for unknown event
      types, which recompute nothing.

Failure modes:
    - SnapshotComputationError (chained to the SQLAlchemyError) when any
      metric query or the upsert fails.  Never swallowed: a stale snapshot
      for a date is a silent correctness gap.
    - InvalidSnapshotDateError for an unparseable date argument.

Metric definitions (snapshot date D):
    Fund:       total_commitments   sum of ACTIVE commitments dated <= D
                capital_deployed    sum of allocations dated <= D
                avg_investor_yield  mean target_return of ACTIVE funds
    Loan:       active_count        FUNDED loans
                delinquent_count    FUNDED loans with a PENDING payment due < D
                total_principal     sum of FUNDED principal
                avg_ltv             mean principal / estimated value
                interest_accrued    one day of simple interest on FUNDED loans
    Payment:    amount_received     COMPLETED payments received on D
                amount_scheduled    PENDING payments due on D
                late_count          PENDING payments due < D
                avg_collection_days mean (received - due) for payments received on D
    Inspection: scheduled_count, completed_count by status;
                avg_completion_hours mean (completed_at - scheduled_at)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lending_kernel.db.types import ZERO, round_money, round_rate, to_decimal
from lending_kernel.db.upsert import insert_or_update
from lending_kernel.domain.calendar import coerce_date
from lending_kernel.domain.clock import Clock, SystemClock
from lending_kernel.domain.events import DomainEvent
from lending_kernel.domain.snapshots import SnapshotVariant, variants_for
from lending_kernel.exceptions import SnapshotComputationError
from lending_kernel.logging_config import LogContext, get_logger
from lending_kernel.models.funds import (
    CommitmentStatus,
    Fund,
    FundCommitment,
    FundLoanAllocation,
    FundStatus,
)
from lending_kernel.models.loans import (
    Inspection,
    InspectionStatus,
    Loan,
    LoanStatus,
    Payment,
    PaymentStatus,
    Property,
)
from lending_kernel.models.snapshots import (
    SNAPSHOT_MODELS,
    FundSnapshot,
    InspectionSnapshot,
    LoanSnapshot,
    PaymentSnapshot,
    SnapshotSet,
)
from lending_kernel.services.base import BaseService
from lending_kernel.services.ingestion_ledger import EventIngestionLedger

logger = get_logger("services.snapshot")

DAYS_PER_YEAR = Decimal("365")
SECONDS_PER_HOUR = Decimal("3600")


def _mean(values: list[Decimal]) -> Decimal | None:
    if not values:
        return None
    return round_rate(sum(values, ZERO) / Decimal(len(values)))


class SnapshotAggregator(BaseService):
    """
    Computes and upserts daily snapshots.

    Args:
        session: Caller-owned session; the aggregator never commits.
        clock: Supplies "today" when no date is given.
        ledger: Ingestion ledger for the incremental path; one bound to the
            same session is created when omitted.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: EventIngestionLedger | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._ledger = ledger or EventIngestionLedger(session, self._clock)
        self._metrics: dict[SnapshotVariant, Callable[[date], dict[str, Any]]] = {
            SnapshotVariant.FUND: self._fund_metrics,
            SnapshotVariant.LOAN: self._loan_metrics,
            SnapshotVariant.PAYMENT: self._payment_metrics,
            SnapshotVariant.INSPECTION: self._inspection_metrics,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compute_fund_snapshot(self, snapshot_date: Any = None) -> FundSnapshot:
        return self.compute(SnapshotVariant.FUND, snapshot_date)

    def compute_loan_snapshot(self, snapshot_date: Any = None) -> LoanSnapshot:
        return self.compute(SnapshotVariant.LOAN, snapshot_date)

    def compute_payment_snapshot(self, snapshot_date: Any = None) -> PaymentSnapshot:
        return self.compute(SnapshotVariant.PAYMENT, snapshot_date)

    def compute_inspection_snapshot(self, snapshot_date: Any = None) -> InspectionSnapshot:
        return self.compute(SnapshotVariant.INSPECTION, snapshot_date)

    def compute_all(self, snapshot_date: Any = None) -> SnapshotSet:
        """Recompute all four variants for one date (batch path)."""
        day = coerce_date(snapshot_date, default=self._clock.today())
        rows = {variant.value: self.compute(variant, day) for variant in SnapshotVariant}
        logger.info("snapshots_computed", extra={"snapshot_date": day.isoformat()})
        return SnapshotSet(snapshot_date=day, **rows)

    def compute_from_event(self, event: DomainEvent) -> bool:
        """
        Incremental path: ingest the event, then recompute the variants its
        type maps to for the event's occurrence date.

        Returns:
            True.  Failures raise rather than returning False.
        """
        self._ledger.ingest(event)

        variants = variants_for(event.event_type)
        if not variants:
            logger.debug(
                "event_ingested_no_recompute",
                extra={"event_id": str(event.event_id), "event_type": event.event_type},
            )
            return True

        day = event.occurred_on
        for variant in variants:
            self.compute(variant, day)
        logger.info(
            "snapshots_recomputed_from_event",
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "variants": [v.value for v in variants],
                "snapshot_date": day.isoformat(),
            },
        )
        return True

    def compute(self, variant: SnapshotVariant, snapshot_date: Any = None):
        """Recompute one variant for one date and return the upserted row."""
        day = coerce_date(snapshot_date, default=self._clock.today())
        model = SNAPSHOT_MODELS[variant]

        with LogContext.bind(snapshot_date=day.isoformat()):
            try:
                values = self._metrics[variant](day)
                insert_or_update(
                    self.session,
                    model,
                    {"snapshot_date": day, **values},
                    index_elements=("snapshot_date",),
                )
                row = self.session.execute(
                    select(model)
                    .where(model.snapshot_date == day)
                    .execution_options(populate_existing=True)
                ).scalar_one()
            except SQLAlchemyError as exc:
                logger.error(
                    "snapshot_computation_failed",
                    extra={"variant": variant.value, "error": str(exc)},
                )
                raise SnapshotComputationError(variant.value, day, str(exc)) from exc

            logger.info(
                "snapshot_upserted",
                extra={"variant": variant.value, **values},
            )
        return row

    # ------------------------------------------------------------------
    # Metric queries
    # ------------------------------------------------------------------

    def _scalar(self, stmt) -> Any:
        return self.session.execute(stmt).scalar()

    def _fund_metrics(self, day: date) -> dict[str, Any]:
        total_commitments = self._scalar(
            select(func.sum(FundCommitment.commitment_amount)).where(
                FundCommitment.status == CommitmentStatus.ACTIVE.value,
                FundCommitment.commitment_date <= day,
            )
        )
        capital_deployed = self._scalar(
            select(func.sum(FundLoanAllocation.allocated_amount)).where(
                FundLoanAllocation.allocation_date <= day,
            )
        )
        yields = self.session.execute(
            select(Fund.target_return).where(
                Fund.status == FundStatus.ACTIVE.value,
                Fund.target_return.is_not(None),
            )
        ).scalars().all()

        return {
            "total_commitments": round_money(to_decimal(total_commitments)),
            "capital_deployed": round_money(to_decimal(capital_deployed)),
            "avg_investor_yield": _mean([to_decimal(y) for y in yields]),
        }

    def _loan_metrics(self, day: date) -> dict[str, Any]:
        funded = Loan.status == LoanStatus.FUNDED.value

        active_count = self._scalar(select(func.count(Loan.id)).where(funded))

        delinquent_count = self._scalar(
            select(func.count(distinct(Loan.id)))
            .join(Payment, Payment.loan_id == Loan.id)
            .where(
                funded,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.payment_date < day,
            )
        )

        total_principal = self._scalar(select(func.sum(Loan.principal)).where(funded))

        ltv_rows = self.session.execute(
            select(Loan.principal, Property.estimated_value)
            .join(Property, Loan.property_id == Property.id)
            .where(funded, Property.estimated_value > 0)
        ).all()
        ltvs = [to_decimal(p) / to_decimal(v) for p, v in ltv_rows]

        rate_rows = self.session.execute(
            select(Loan.principal, Loan.interest_rate).where(funded)
        ).all()
        daily_interest = sum(
            (to_decimal(p) * to_decimal(r) / Decimal(100) / DAYS_PER_YEAR for p, r in rate_rows),
            ZERO,
        )

        return {
            "active_count": int(active_count or 0),
            "delinquent_count": int(delinquent_count or 0),
            "avg_ltv": _mean(ltvs),
            "total_principal": round_money(to_decimal(total_principal)),
            "interest_accrued": round_money(daily_interest),
        }

    def _payment_metrics(self, day: date) -> dict[str, Any]:
        pending = Payment.status == PaymentStatus.PENDING.value
        completed = Payment.status == PaymentStatus.COMPLETED.value

        amount_received = self._scalar(
            select(func.sum(Payment.amount)).where(completed, Payment.received_date == day)
        )
        amount_scheduled = self._scalar(
            select(func.sum(Payment.amount)).where(pending, Payment.payment_date == day)
        )
        late_count = self._scalar(
            select(func.count(Payment.id)).where(pending, Payment.payment_date < day)
        )
        collection_rows = self.session.execute(
            select(Payment.payment_date, Payment.received_date).where(
                completed, Payment.received_date == day,
            )
        ).all()
        collection_days = [
            Decimal((received - due).days) for due, received in collection_rows
        ]

        return {
            "amount_received": round_money(to_decimal(amount_received)),
            "amount_scheduled": round_money(to_decimal(amount_scheduled)),
            "late_count": int(late_count or 0),
            "avg_collection_days": _mean(collection_days),
        }

    def _inspection_metrics(self, day: date) -> dict[str, Any]:
        scheduled_count = self._scalar(
            select(func.count(Inspection.id)).where(
                Inspection.status == InspectionStatus.SCHEDULED.value,
            )
        )
        completed_count = self._scalar(
            select(func.count(Inspection.id)).where(
                Inspection.status == InspectionStatus.COMPLETED.value,
            )
        )
        duration_rows = self.session.execute(
            select(Inspection.scheduled_at, Inspection.completed_at).where(
                Inspection.status == InspectionStatus.COMPLETED.value,
                Inspection.scheduled_at.is_not(None),
                Inspection.completed_at.is_not(None),
            )
        ).all()
        hours = [
            Decimal(str((completed - scheduled).total_seconds())) / SECONDS_PER_HOUR
            for scheduled, completed in duration_rows
        ]

        return {
            "scheduled_count": int(scheduled_count or 0),
            "completed_count": int(completed_count or 0),
            "avg_completion_hours": _mean(hours),
        }
