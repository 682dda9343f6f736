"""
Module: lending_kernel.models.loans
Responsibility: Source-of-truth loan book records read by the snapshot
    aggregator: properties, loans, scheduled payments and inspections.
Architecture position: Kernel > Models.  May import from db/ only.

Non-goals:
    - No CRUD services and no amortization math.  Payment rows are produced
      by an external schedule generator.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lending_kernel.db.base import TrackedBase, UUIDString


class LoanStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    VERIFICATION = "verification"
    UNDERWRITING = "underwriting"
    APPROVED = "approved"
    CLOSING = "closing"
    FUNDED = "funded"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class InspectionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Property(TrackedBase):
    """Collateral securing a loan."""

    __tablename__ = "properties"

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    estimated_value: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Property {self.address}>"


class Loan(TrackedBase):
    """A loan on the book.  Only FUNDED loans count toward snapshot metrics."""

    __tablename__ = "loans"

    __table_args__ = (
        Index("idx_loans_status", "status"),
    )

    organization_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    property_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("properties.id"), nullable=True,
    )
    principal: Mapped[Decimal] = mapped_column(nullable=False)
    # Annual interest rate in percent (12 = 12% per year)
    interest_rate: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=LoanStatus.DRAFT.value,
    )
    funded_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Loan {self.name or self.id} {self.status}>"


class Payment(TrackedBase):
    """A scheduled borrower payment and, once collected, when it arrived."""

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payments_status_due", "status", "payment_date"),
        Index("idx_payments_received", "received_date"),
    )

    loan_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("loans.id"), nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PaymentStatus.PENDING.value,
    )
    # Due date
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment loan={self.loan_id} {self.amount} {self.status}>"


class Inspection(TrackedBase):
    """A construction inspection on a loan's collateral."""

    __tablename__ = "inspections"

    __table_args__ = (
        Index("idx_inspections_status", "status"),
    )

    loan_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("loans.id"), nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=InspectionStatus.SCHEDULED.value,
    )
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Inspection {self.id} {self.status}>"
