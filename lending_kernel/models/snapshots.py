"""
Module: lending_kernel.models.snapshots
Responsibility: ORM persistence for the four daily analytics snapshot variants
    (fund, loan, payment, inspection).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one row per snapshot_date per variant (UNIQUE on snapshot_date).
      Recomputation overwrites the row through an upsert keyed on that column.
    - Snapshot rows are never deleted.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase
from lending_kernel.domain.snapshots import SnapshotVariant


class FundSnapshot(TrackedBase):
    """Capital committed and deployed across all funds as of one day."""

    __tablename__ = "fund_snapshots"

    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    total_commitments: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    capital_deployed: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    # Mean target return of active funds, in percent
    avg_investor_yield: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<FundSnapshot {self.snapshot_date}>"


class LoanSnapshot(TrackedBase):
    """Funded-loan book as of one day."""

    __tablename__ = "loan_snapshots"

    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    active_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delinquent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Mean principal / estimated property value, as a ratio (0.65 = 65% LTV)
    avg_ltv: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_principal: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    interest_accrued: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<LoanSnapshot {self.snapshot_date}>"


class PaymentSnapshot(TrackedBase):
    """Collections activity for one day."""

    __tablename__ = "payment_snapshots"

    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    amount_received: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    amount_scheduled: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    late_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_collection_days: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<PaymentSnapshot {self.snapshot_date}>"


class InspectionSnapshot(TrackedBase):
    """Inspection pipeline as of one day."""

    __tablename__ = "inspection_snapshots"

    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    scheduled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_completion_hours: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<InspectionSnapshot {self.snapshot_date}>"


SNAPSHOT_MODELS: dict[SnapshotVariant, type[TrackedBase]] = {
    SnapshotVariant.FUND: FundSnapshot,
    SnapshotVariant.LOAN: LoanSnapshot,
    SnapshotVariant.PAYMENT: PaymentSnapshot,
    SnapshotVariant.INSPECTION: InspectionSnapshot,
}


@dataclass(frozen=True)
class SnapshotSet:
    """The four snapshot rows for one date; a variant not yet computed is None."""

    snapshot_date: date
    fund: FundSnapshot | None = None
    loan: LoanSnapshot | None = None
    payment: PaymentSnapshot | None = None
    inspection: InspectionSnapshot | None = None

    def get(self, variant: SnapshotVariant) -> TrackedBase | None:
        return getattr(self, variant.value)

    @property
    def is_complete(self) -> bool:
        return all(self.get(v) is not None for v in SnapshotVariant)
