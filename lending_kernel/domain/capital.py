"""
Capital records -- ORM-free views of commitments and allocations.

Selectors return these; the performance engine computes on them without
touching the database.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class CommitmentRecord:
    commitment_id: UUID
    amount: Decimal
    commitment_date: date


@dataclass(frozen=True)
class AllocationRecord:
    """One fund-to-loan allocation."""

    allocation_id: UUID
    loan_id: UUID
    allocated: Decimal
    returned: Decimal
    allocation_date: date
    full_return_date: date | None = None
    commitment_id: UUID | None = None
    loan_name: str | None = None
