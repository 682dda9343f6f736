"""
Module: lending_kernel.db.upsert
Responsibility: Dialect-aware single-statement INSERT ... ON CONFLICT helpers.
    Snapshot rows are upserted on their date key and ingestion records are
    inserted-if-absent on their event id; both must be atomic at the storage
    layer so concurrent triggers never produce duplicate rows.
Architecture position: Kernel > DB.  May import from db/base.py only.

Invariants enforced:
    - One statement per call; the UNIQUE constraint named by ``index_elements``
      arbitrates concurrent writers.

Failure modes:
    - NotImplementedError for dialects other than postgresql and sqlite.
    - SQLAlchemyError from the driver propagates unchanged.
"""

from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from lending_kernel.db.base import Base

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_insert(session: Session, model: type[Base]):
    dialect = session.get_bind().dialect.name
    try:
        insert_fn = _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise NotImplementedError(
            f"Upsert is not supported on dialect '{dialect}'"
        ) from None
    return insert_fn(model)


def insert_or_update(
    session: Session,
    model: type[Base],
    values: dict[str, Any],
    index_elements: Iterable[str],
) -> None:
    """
    INSERT ``values`` or, on key conflict, overwrite every non-key column.

    ``updated_at`` is refreshed when the model carries it.
    """
    keys = tuple(index_elements)
    stmt = _dialect_insert(session, model).values(**values)
    updates = {
        name: stmt.excluded[name]
        for name in values
        if name not in keys and name != "id"
    }
    if "updated_at" in model.__table__.c:
        updates["updated_at"] = func.now()
    session.execute(
        stmt.on_conflict_do_update(index_elements=list(keys), set_=updates)
    )


def insert_if_absent(
    session: Session,
    model: type[Base],
    values: dict[str, Any],
    index_elements: Iterable[str],
) -> bool:
    """
    INSERT ``values`` unless a row with the same key already exists.

    Returns True when a row was written.  Callers that must not observe the
    difference (the ingestion ledger) discard the flag.
    """
    stmt = _dialect_insert(session, model).values(**values)
    result = session.execute(
        stmt.on_conflict_do_nothing(index_elements=list(index_elements))
    )
    return bool(result.rowcount)
