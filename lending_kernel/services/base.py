"""
BaseService -- abstract base for kernel services that write.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()`` or single statements; they never commit or roll back.
The caller (session_scope, unit_of_work, a test) owns the transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Read-only queries belong in ``lending_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
