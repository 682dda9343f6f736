"""
PaymentScheduleHandler -- hands funded loans to the schedule generator.

Amortization math and the payment rows it produces belong to an external
collaborator.  This handler only extracts the loan id from a Loan.Funded
event and calls ``ScheduleGenerator.generate``.
"""

from typing import Any, Protocol, runtime_checkable

from lending_kernel.domain.events import DomainEvent, thaw
from lending_kernel.exceptions import InvalidEventError
from lending_kernel.logging_config import get_logger

logger = get_logger("services.handlers.payment_schedule")


@runtime_checkable
class ScheduleGenerator(Protocol):
    """Creates the payment schedule of a newly funded loan."""

    def generate(self, loan_id: str, payload: dict[str, Any]) -> int:
        """Create the schedule and return the number of payments created."""
        ...


class PaymentScheduleHandler:
    HANDLER_NAME = "PaymentScheduleHandler"
    PRIORITY = 10

    def __init__(self, generator: ScheduleGenerator):
        self._generator = generator

    def __call__(self, event: DomainEvent) -> None:
        payload = thaw(event.payload)
        loan_id = payload.get("loanId") or event.aggregate_id
        if not loan_id:
            raise InvalidEventError("Loan.Funded event carries no loan id", event_id=event.event_id)

        created = self._generator.generate(str(loan_id), payload)
        logger.info(
            "payment_schedule_created",
            extra={"loan_id": str(loan_id), "payment_count": created},
        )
