"""
Service layer for file upload/download history and statistics.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.core.errors import (
    HistoryEntryNotFound,
    MembershipValidationError,
    NotAuthorized,
)
from xlanalytics.core.profile import StatisticsData
from xlanalytics.core.uuid import UUID
from xlanalytics.database.history import FileHistoryItem

from . import authorization
from . import profile as profile_service
from .storage import flush

ENTRY_TYPES = ("upload", "download")


async def record_entry(
    user_id: str,
    type: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    file_name: str | None = None,
    url: str | None = None,
    chart_type: str | None = None,
    rows: int = 0,
    file_size: int | None = None,
    status: str | None = None,
) -> FileHistoryItem:
    """
    Append an upload or download to a user's history. Uploads with rows are
    marked as analyzed unless a status is given.

    Raises
    ------
    MembershipValidationError
        For an unknown entry type or a negative row count.
    ProfileNotFound
        If the user does not exist.
    """
    if type not in ENTRY_TYPES:
        raise MembershipValidationError(f"Unknown history entry type {type}")

    if rows < 0:
        raise MembershipValidationError("Row count cannot be negative")

    log = log.bind(user_id=user_id, entry_type=type, file_name=file_name)

    await profile_service.read_by_id(user_id=user_id, conn=conn)

    if status is None:
        status = "Analyzed" if rows > 0 else "Uploaded"

    entry = FileHistoryItem(
        user_id=user_id,
        type=type,
        file_name=file_name,
        url=url,
        chart_type=chart_type,
        rows=rows,
        file_size=file_size,
        status=status,
        uploaded_at=datetime.now(timezone.utc),
    )

    conn.add(entry)
    await flush(conn, log)

    await log.ainfo("history.recorded", entry_id=entry.entry_id, rows=rows)

    return entry


async def list_history(
    viewer_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    admin_scope: authorization.AdminScope = "group",
    limit: int = 100,
) -> list[FileHistoryItem]:
    """
    History entries visible to `viewer_id`, newest first, at most `limit`
    per owner.
    """
    log = log.bind(viewer_id=viewer_id)

    owners = await authorization.visible_owner_ids(
        viewer_id=viewer_id, conn=conn, log=log, admin_scope=admin_scope
    )

    newest_first = [FileHistoryItem.uploaded_at.desc(), FileHistoryItem.entry_id.desc()]

    ranked = select(
        FileHistoryItem.entry_id,
        func.row_number()
        .over(partition_by=FileHistoryItem.user_id, order_by=newest_first)
        .label("rank"),
    )

    if owners is not None:
        ranked = ranked.where(FileHistoryItem.user_id.in_(owners))

    ranked = ranked.subquery()

    query = (
        select(FileHistoryItem)
        .join(ranked, FileHistoryItem.entry_id == ranked.c.entry_id)
        .where(ranked.c.rank <= limit)
        .order_by(*newest_first)
    )

    history = (await conn.execute(query)).scalars().all()

    await log.adebug("history.listed", number_of_entries=len(history))

    return list(history)


async def delete_entry(
    viewer_id: str,
    entry_id: UUID,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    admin_scope: authorization.AdminScope = "group",
):
    """
    Delete a history entry that `viewer_id` is allowed to see.

    Raises
    ------
    HistoryEntryNotFound
        If the entry does not exist.
    NotAuthorized
        If the entry is outside the viewer's scope.
    """
    log = log.bind(viewer_id=viewer_id, entry_id=entry_id)

    entry = await conn.get(FileHistoryItem, entry_id)

    if entry is None:
        await log.ainfo("history.delete.not_found")
        raise HistoryEntryNotFound(f"History entry {entry_id} not found")

    allowed = await authorization.can_view(
        viewer_id=viewer_id,
        record_owner_id=entry.user_id,
        conn=conn,
        log=log,
        admin_scope=admin_scope,
    )

    if not allowed:
        raise NotAuthorized("Not allowed to delete this history entry")

    await conn.delete(entry)
    await flush(conn, log)

    await log.ainfo("history.deleted")


async def get_statistics(
    user_id: str, conn: AsyncSession, log: FilteringBoundLogger
) -> StatisticsData:
    """
    Upload statistics for a user: number of files, total rows, the rounded
    mean rows per file and the largest file.
    """
    result = await conn.execute(
        select(FileHistoryItem.rows)
        .where(FileHistoryItem.user_id == user_id)
        .where(FileHistoryItem.type == "upload")
    )
    rows = [x or 0 for x in result.scalars().all()]

    statistics = StatisticsData(
        total_files=len(rows),
        analyzed_rows=sum(rows),
        average_value=round(sum(rows) / len(rows)) if rows else 0,
        max_value=max(rows, default=0),
    )

    await log.adebug("history.statistics", user_id=user_id, **statistics.model_dump())

    return statistics
