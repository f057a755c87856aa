"""
Dialect-aware INSERT ... ON CONFLICT helpers.

PostgreSQL and SQLite both support ``ON CONFLICT``; SQLAlchemy exposes it
through each dialect's own ``insert`` construct. These helpers pick the
right one from the session's bind so callers stay dialect-agnostic.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import Table, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: Session, table: Table):
    """Return a dialect-specific ``insert(table)`` supporting ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError as exc:
        raise NotImplementedError(f"ON CONFLICT is not supported for dialect {dialect!r}") from exc
    return insert(table)


def insert_if_absent(
    session: Session,
    table: Table,
    values: dict[str, Any],
    conflict_columns: Iterable[str],
) -> bool:
    """
    Insert a row unless one already exists for ``conflict_columns``.

    Returns True if this call inserted the row, False if it was a no-op.
    """
    stmt = dialect_insert(session, table).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    result = session.execute(stmt)
    return result.rowcount == 1


def upsert_if_changed(
    session: Session,
    table: Table,
    values: dict[str, Any],
    conflict_columns: Iterable[str],
    compare_columns: Iterable[str],
) -> bool:
    """
    Insert a row, or update the existing one when any compared column differs.

    Columns outside ``conflict_columns`` are overwritten only if at least one
    of ``compare_columns`` changed, so repeating an identical upsert leaves
    the stored row (timestamps included) untouched.

    Returns True if a row was inserted or updated.
    """
    conflict_columns = list(conflict_columns)
    stmt = dialect_insert(session, table).values(**values)
    excluded = stmt.excluded
    changed = or_(*(table.c[name] != excluded[name] for name in compare_columns))
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={name: excluded[name] for name in values if name not in conflict_columns},
        where=changed,
    )
    result = session.execute(stmt)
    return result.rowcount > 0
