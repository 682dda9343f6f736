"""
Pytest fixtures for the lending analytics test suite.

Every test gets a fresh in-memory SQLite database.  The engine uses a
StaticPool so sessions opened by handlers (through ``session_factory``)
see the same database as the test itself.

Factory fixtures (``make_fund``, ``make_commitment``, ...) add a source row,
flush it and return it.  They write through the ``session`` fixture;
handler tests that need committed data call ``session.commit()`` first.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import lending_kernel.models  # noqa: F401  (registers every table on Base.metadata)
from lending_kernel.db.base import Base
from lending_kernel.domain.clock import DeterministicClock
from lending_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from lending_kernel.models.funds import (
    CommitmentStatus,
    Fund,
    FundCommitment,
    FundLoanAllocation,
    FundStatus,
    FundType,
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

TEST_ORGANIZATION = "org-test"
TEST_NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture lending_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, bus):
            bus.publish(event)
            logs = captured_logs()
            assert any(r["message"] == "handler_failed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("lending_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock(TEST_NOW)


# =============================================================================
# Source-record factories
# =============================================================================


@pytest.fixture
def make_fund(session):
    def _make(
        name: str = "Fund I",
        fund_type: FundType = FundType.PRIVATE,
        status: FundStatus = FundStatus.ACTIVE,
        inception_date: date | None = date(2024, 1, 1),
        target_return: Decimal | None = None,
        organization_id: str = TEST_ORGANIZATION,
    ) -> Fund:
        fund = Fund(
            organization_id=organization_id,
            name=name,
            fund_type=fund_type.value,
            status=status.value,
            inception_date=inception_date,
            target_return=target_return,
        )
        session.add(fund)
        session.flush()
        return fund

    return _make


@pytest.fixture
def make_commitment(session):
    def _make(
        fund: Fund,
        amount: str | Decimal,
        commitment_date: date,
        status: CommitmentStatus = CommitmentStatus.ACTIVE,
    ) -> FundCommitment:
        commitment = FundCommitment(
            fund_id=fund.id,
            lender_id=f"lender-{uuid4().hex[:6]}",
            commitment_amount=Decimal(amount),
            status=status.value,
            commitment_date=commitment_date,
        )
        session.add(commitment)
        session.flush()
        return commitment

    return _make


@pytest.fixture
def make_loan(session):
    def _make(
        principal: str | Decimal = "100000",
        interest_rate: str | Decimal = "10",
        status: LoanStatus = LoanStatus.FUNDED,
        name: str | None = "Maple St",
        estimated_value: str | Decimal | None = None,
        funded_date: date | None = date(2024, 1, 15),
    ) -> Loan:
        property_id = None
        if estimated_value is not None:
            prop = Property(address=f"{name or 'Lot'} address", estimated_value=Decimal(estimated_value))
            session.add(prop)
            session.flush()
            property_id = prop.id
        loan = Loan(
            organization_id=TEST_ORGANIZATION,
            name=name,
            property_id=property_id,
            principal=Decimal(principal),
            interest_rate=Decimal(interest_rate),
            status=status.value,
            funded_date=funded_date,
        )
        session.add(loan)
        session.flush()
        return loan

    return _make


@pytest.fixture
def make_allocation(session):
    def _make(
        fund: Fund,
        loan_id,
        allocated: str | Decimal,
        allocation_date: date,
        returned: str | Decimal = "0",
        full_return_date: date | None = None,
        commitment: FundCommitment | None = None,
    ) -> FundLoanAllocation:
        allocation = FundLoanAllocation(
            fund_id=fund.id,
            loan_id=loan_id,
            commitment_id=commitment.id if commitment is not None else None,
            allocated_amount=Decimal(allocated),
            returned_amount=Decimal(returned),
            allocation_date=allocation_date,
            full_return_date=full_return_date,
        )
        session.add(allocation)
        session.flush()
        return allocation

    return _make


@pytest.fixture
def make_payment(session):
    def _make(
        loan: Loan,
        amount: str | Decimal,
        due_date: date,
        status: PaymentStatus = PaymentStatus.PENDING,
        received_date: date | None = None,
    ) -> Payment:
        payment = Payment(
            loan_id=loan.id,
            amount=Decimal(amount),
            status=status.value,
            payment_date=due_date,
            received_date=received_date,
        )
        session.add(payment)
        session.flush()
        return payment

    return _make


@pytest.fixture
def make_inspection(session):
    def _make(
        status: InspectionStatus,
        scheduled_at: datetime | None = None,
        completed_at: datetime | None = None,
        loan: Loan | None = None,
    ) -> Inspection:
        inspection = Inspection(
            loan_id=loan.id if loan is not None else None,
            status=status.value,
            scheduled_at=scheduled_at,
            completed_at=completed_at,
        )
        session.add(inspection)
        session.flush()
        return inspection

    return _make
