"""
Helpers shared by the service layer for talking to the store.
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.core.errors import StorageError


async def flush(conn: AsyncSession, log: FilteringBoundLogger):
    """
    Flush pending writes, converting driver and constraint failures into
    `StorageError`. Nothing is committed; the caller owns the transaction.
    """
    try:
        await conn.flush()
    except SQLAlchemyError as e:
        await log.aerror("store.flush_failed", error=str(e))
        raise StorageError("The data store rejected the write") from e


async def insert_if_absent(
    model, conn: AsyncSession, log: FilteringBoundLogger, **values
) -> bool:
    """
    Insert a row of `model` unless one with the same primary key already
    exists (`INSERT ... ON CONFLICT DO NOTHING`). Two transactions adding the
    same row both succeed; only one of them inserts.

    Returns
    -------
    inserted: bool
        Whether this call created the row.
    """
    match conn.get_bind().dialect.name:
        case "postgresql":
            insert = postgresql.insert
        case _:
            insert = sqlite.insert

    statement = insert(model).values(**values).on_conflict_do_nothing()

    try:
        result = await conn.execute(statement)
    except SQLAlchemyError as e:
        await log.aerror("store.insert_failed", table=model.__tablename__, error=str(e))
        raise StorageError("The data store rejected the write") from e

    return result.rowcount > 0
