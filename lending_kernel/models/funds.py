"""
Module: lending_kernel.models.funds
Responsibility: Source-of-truth fund records read by the snapshot aggregator
    and the fund performance calculator: funds, investor commitments and
    fund-to-loan capital allocations.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Amounts are Decimal (Numeric(38, 9)); returned_amount defaults to 0.
    - An allocation may name the commitment whose capital it deployed
      (commitment_id).  Deployment latency pairs the two when it is set.

Non-goals:
    - No CRUD services.  These tables are written by the surrounding
      application and only read here.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase, UUIDString


class FundType(str, Enum):
    PRIVATE = "private"
    SYNDICATED = "syndicated"
    INSTITUTIONAL = "institutional"


class FundStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    LIQUIDATED = "liquidated"


class CommitmentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class Fund(TrackedBase):
    """An investment vehicle that pools commitments and deploys them into loans."""

    __tablename__ = "funds"

    __table_args__ = (
        Index("idx_funds_organization", "organization_id"),
    )

    organization_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    fund_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=FundType.PRIVATE.value,
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=FundStatus.ACTIVE.value,
    )
    fund_size: Mapped[Decimal | None] = mapped_column(nullable=True)
    # Target annual return in percent (12.5 = 12.5%)
    target_return: Mapped[Decimal | None] = mapped_column(nullable=True)
    inception_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Fund {self.name} ({self.fund_type})>"


class FundCommitment(TrackedBase):
    """A lender's commitment of capital to a fund."""

    __tablename__ = "fund_commitments"

    __table_args__ = (
        Index("idx_fund_commitments_fund_date", "fund_id", "commitment_date"),
    )

    fund_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("funds.id"), nullable=False,
    )
    lender_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    commitment_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=CommitmentStatus.PENDING.value,
    )
    commitment_date: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<FundCommitment {self.fund_id} {self.commitment_amount} {self.status}>"


class FundLoanAllocation(TrackedBase):
    """
    Capital deployed from a fund into a loan, and what has come back.

    loan_id is deliberately not a foreign key: an allocation can outlive the
    loan record, and readers drop allocations whose loan cannot be resolved.
    """

    __tablename__ = "fund_loan_allocations"

    __table_args__ = (
        Index("idx_fund_allocations_fund_date", "fund_id", "allocation_date"),
        Index("idx_fund_allocations_return", "fund_id", "full_return_date"),
    )

    fund_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("funds.id"), nullable=False,
    )
    loan_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    commitment_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("fund_commitments.id"), nullable=True,
    )
    allocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    returned_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    allocation_date: Mapped[date] = mapped_column(Date, nullable=False)
    full_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<FundLoanAllocation fund={self.fund_id} loan={self.loan_id}>"
