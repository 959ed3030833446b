"""
Idempotent multi-row insert.

Every write in the pipeline is keyed on a natural key; a conflicting row is a
silent skip, never an error. The statement is built with the dialect-specific
``insert`` so PostgreSQL and SQLite both get ``ON CONFLICT DO NOTHING``.
"""
from typing import Any, Dict, List, Sequence

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def _dialect_insert(session: Session, model):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"insert_ignore not supported for dialect {dialect}")


def insert_ignore(
    session: Session,
    model,
    rows: Sequence[Dict[str, Any]],
    conflict_columns: List[str] = None,
) -> int:
    """
    Insert ``rows`` in one statement, skipping natural-key collisions.

    Returns the number of rows actually written. Does not commit.
    """
    if not rows:
        return 0
    stmt = _dialect_insert(session, model).values(list(rows))
    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
    result = session.execute(stmt)
    return max(result.rowcount or 0, 0)
