"""Database utility functions for cross-database compatibility."""

import logging
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def upsert(
    session: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    conflict_columns: list[str],
    update_columns: list[str] | None = None,
) -> None:
    """
    Database-agnostic upsert operation.

    Uses native INSERT ... ON CONFLICT on PostgreSQL and SQLite, and falls
    back to SELECT + INSERT/UPDATE for any other dialect.

    Args:
        session: AsyncSession instance
        model: SQLModel table class
        values: Dictionary of column values to insert/update
        conflict_columns: Columns that define uniqueness (for conflict detection)
        update_columns: Columns to update on conflict (defaults to all non-conflict columns)

    Example:
        await upsert(
            session,
            StandingsRow,
            {"league_id": 1, "team_id": 7, "points": 12},
            conflict_columns=["league_id", "team_id"],
        )
    """
    if update_columns is None:
        update_columns = [k for k in values.keys() if k not in conflict_columns]

    dialect = session.get_bind().dialect.name
    insert_fn = {"postgresql": pg_insert, "sqlite": sqlite_insert}.get(dialect)

    if insert_fn is not None:
        stmt = insert_fn(model).values(**values)
        if update_columns:
            update_dict = {col: getattr(stmt.excluded, col) for col in update_columns}
            stmt = stmt.on_conflict_do_update(
                index_elements=conflict_columns,
                set_=update_dict,
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
        await session.execute(stmt)
        return

    logger.debug(f"No native upsert for dialect {dialect}, using SELECT + INSERT/UPDATE")

    filters = [getattr(model, col) == values[col] for col in conflict_columns]
    result = await session.execute(select(model).where(*filters))
    existing = result.scalar_one_or_none()

    if existing:
        for col in update_columns:
            if col in values:
                setattr(existing, col, values[col])
    else:
        session.add(model(**values))


async def bulk_upsert(
    session: AsyncSession,
    model: type[T],
    values_list: list[dict[str, Any]],
    conflict_columns: list[str],
    update_columns: list[str] | None = None,
) -> int:
    """
    Upsert every record in values_list inside the caller's transaction.

    Returns:
        Number of records processed
    """
    for values in values_list:
        await upsert(session, model, values, conflict_columns, update_columns)
    return len(values_list)
