"""
Module: lending_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the type annotation map that fixes column
    types for money, timestamps and identifiers, and the TrackedBase mixin for
    row timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or outer layers.

Invariants enforced:
    - UUID primary keys on every model, stored as String(36) so the schema
      runs unchanged on PostgreSQL and SQLite.
    - Decimal maps to Numeric(38, 9).  Money is never stored as float.

Failure modes:
    - IntegrityError on duplicate primary key (uuid4, practically impossible).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID stored as its 36-character string form.

    Converts UUID -> str on bind and str -> UUID on load.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all lending models.

    Guarantees:
        - id is a uuid4 stored as String(36).
        - Decimal -> Numeric(38, 9); datetime -> DateTime(timezone=True);
          date -> Date; int -> BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base adding created_at / updated_at row timestamps.

    created_at is set by the server on INSERT.  updated_at is set on INSERT
    and refreshed on every ORM UPDATE; the snapshot upsert sets it explicitly
    because its ON CONFLICT branch bypasses the ORM.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


UUID = PyUUID
