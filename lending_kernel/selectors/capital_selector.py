"""
Module: lending_kernel.selectors.capital_selector
Responsibility: Date-range-filterable reads of fund capital: committed,
    deployed and returned totals, commitment and return cash flows, and the
    allocation rows behind latency, timeline and per-investment figures.
Architecture position: Kernel > Selectors.  Returns Decimal totals and the
    frozen records from domain/capital.py, never ORM rows.

Invariants enforced:
    - Only ACTIVE commitments count as committed capital.
    - Totals are Decimal; an empty range sums to Decimal("0").
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from lending_kernel.db.types import to_decimal
from lending_kernel.domain.capital import AllocationRecord, CommitmentRecord
from lending_kernel.models.funds import (
    CommitmentStatus,
    Fund,
    FundCommitment,
    FundLoanAllocation,
)
from lending_kernel.models.loans import Loan
from lending_kernel.selectors.base import BaseSelector

_ACTIVE = CommitmentStatus.ACTIVE.value


def _to_record(allocation: FundLoanAllocation, loan_name: str | None = None) -> AllocationRecord:
    return AllocationRecord(
        allocation_id=allocation.id,
        loan_id=allocation.loan_id,
        allocated=to_decimal(allocation.allocated_amount),
        returned=to_decimal(allocation.returned_amount),
        allocation_date=allocation.allocation_date,
        full_return_date=allocation.full_return_date,
        commitment_id=allocation.commitment_id,
        loan_name=loan_name,
    )


class CapitalSelector(BaseSelector):
    """Capital reads for one fund (or one organization's funds)."""

    # ------------------------------------------------------------------
    # Funds
    # ------------------------------------------------------------------

    def get_fund(self, fund_id: UUID) -> Fund | None:
        return self.session.get(Fund, fund_id)

    def funds_for_organization(self, organization_id: str) -> list[Fund]:
        return list(
            self.session.execute(
                select(Fund)
                .where(Fund.organization_id == organization_id)
                .order_by(Fund.name, Fund.id)
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def committed_total(self, fund_id: UUID, start: date, end: date) -> Decimal:
        return to_decimal(
            self.session.execute(
                select(func.sum(FundCommitment.commitment_amount)).where(
                    FundCommitment.fund_id == fund_id,
                    FundCommitment.status == _ACTIVE,
                    FundCommitment.commitment_date >= start,
                    FundCommitment.commitment_date <= end,
                )
            ).scalar()
        )

    def deployed_total(self, fund_id: UUID, start: date, end: date) -> Decimal:
        return to_decimal(
            self.session.execute(
                select(func.sum(FundLoanAllocation.allocated_amount)).where(
                    FundLoanAllocation.fund_id == fund_id,
                    FundLoanAllocation.allocation_date >= start,
                    FundLoanAllocation.allocation_date <= end,
                )
            ).scalar()
        )

    def returned_total(self, fund_id: UUID, end: date) -> Decimal:
        """Returned capital on allocations made on or before ``end``, whenever it came back."""
        return to_decimal(
            self.session.execute(
                select(func.sum(FundLoanAllocation.returned_amount)).where(
                    FundLoanAllocation.fund_id == fund_id,
                    FundLoanAllocation.allocation_date <= end,
                )
            ).scalar()
        )

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def active_commitments(
        self,
        fund_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[CommitmentRecord]:
        stmt = select(FundCommitment).where(
            FundCommitment.fund_id == fund_id,
            FundCommitment.status == _ACTIVE,
        )
        if start is not None:
            stmt = stmt.where(FundCommitment.commitment_date >= start)
        if end is not None:
            stmt = stmt.where(FundCommitment.commitment_date <= end)
        stmt = stmt.order_by(FundCommitment.commitment_date, FundCommitment.id)
        return [
            CommitmentRecord(
                commitment_id=c.id,
                amount=to_decimal(c.commitment_amount),
                commitment_date=c.commitment_date,
            )
            for c in self.session.execute(stmt).scalars()
        ]

    def allocations(
        self,
        fund_id: UUID,
        allocated_from: date | None = None,
        allocated_to: date | None = None,
    ) -> list[AllocationRecord]:
        stmt = select(FundLoanAllocation).where(FundLoanAllocation.fund_id == fund_id)
        if allocated_from is not None:
            stmt = stmt.where(FundLoanAllocation.allocation_date >= allocated_from)
        if allocated_to is not None:
            stmt = stmt.where(FundLoanAllocation.allocation_date <= allocated_to)
        stmt = stmt.order_by(FundLoanAllocation.allocation_date, FundLoanAllocation.id)
        return [_to_record(a) for a in self.session.execute(stmt).scalars()]

    def returns_in_window(self, fund_id: UUID, start: date, end: date) -> list[AllocationRecord]:
        """Allocations whose full return landed inside ``[start, end]``."""
        stmt = (
            select(FundLoanAllocation)
            .where(
                FundLoanAllocation.fund_id == fund_id,
                FundLoanAllocation.full_return_date.is_not(None),
                FundLoanAllocation.full_return_date >= start,
                FundLoanAllocation.full_return_date <= end,
            )
            .order_by(FundLoanAllocation.full_return_date, FundLoanAllocation.id)
        )
        return [_to_record(a) for a in self.session.execute(stmt).scalars()]

    def allocations_with_loans(self, fund_id: UUID) -> list[AllocationRecord]:
        """Allocations joined to their loan; allocations with no loan row are dropped."""
        stmt = (
            select(FundLoanAllocation, Loan.name)
            .join(Loan, Loan.id == FundLoanAllocation.loan_id)
            .where(FundLoanAllocation.fund_id == fund_id)
            .order_by(FundLoanAllocation.allocation_date, FundLoanAllocation.id)
        )
        return [_to_record(a, loan_name) for a, loan_name in self.session.execute(stmt)]

    def earliest_activity(self, fund_id: UUID) -> date | None:
        """First commitment or allocation date of the fund, None when it has neither."""
        first_commitment = self.session.execute(
            select(func.min(FundCommitment.commitment_date)).where(
                FundCommitment.fund_id == fund_id,
            )
        ).scalar()
        first_allocation = self.session.execute(
            select(func.min(FundLoanAllocation.allocation_date)).where(
                FundLoanAllocation.fund_id == fund_id,
            )
        ).scalar()
        dates = [d for d in (first_commitment, first_allocation) if d is not None]
        return min(dates) if dates else None
