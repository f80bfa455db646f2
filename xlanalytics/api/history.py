"""
Upload/download history and statistics.
"""

from fastapi import APIRouter

from xlanalytics.core.errors import NotAuthorized
from xlanalytics.core.models import HistoryEntryRequest, HistoryResponse
from xlanalytics.core.profile import FileHistoryData, StatisticsData
from xlanalytics.core.uuid import UUID
from xlanalytics.service import authorization
from xlanalytics.service import history as history_service

from .dependencies import DatabaseDependency, LoggerDependency, SettingsDependency
from .identity import CallerDependency

history_app = APIRouter(tags=["History"])


@history_app.get(
    "",
    summary="List history",
    description=(
        "History entries visible to the caller, newest first. Users see their "
        "own entries; administrators see their group's, or everyone's when the "
        "service runs with a system-wide admin scope."
    ),
)
async def list_history(
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> HistoryResponse:
    entries = await history_service.list_history(
        viewer_id=caller.user_id,
        conn=conn,
        log=log,
        admin_scope=settings.admin_history_scope,
        limit=settings.history_limit,
    )
    return HistoryResponse(history=[x.to_core() for x in entries])


@history_app.post("", summary="Add a history entry", status_code=201)
async def add_entry(
    content: HistoryEntryRequest,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> FileHistoryData:
    entry = await history_service.record_entry(
        user_id=caller.user_id,
        type=content.type,
        file_name=content.file_name,
        url=content.url,
        chart_type=content.chart_type,
        rows=content.rows,
        file_size=content.file_size,
        status=content.status,
        conn=conn,
        log=log,
    )
    return entry.to_core()


@history_app.delete(
    "/{entry_id}",
    summary="Delete a history entry",
    responses={
        403: {"description": "Outside the caller's viewing scope."},
        404: {"description": "Entry not found."},
    },
)
async def delete_entry(
    entry_id: UUID,
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> None:
    await history_service.delete_entry(
        viewer_id=caller.user_id,
        entry_id=entry_id,
        conn=conn,
        log=log,
        admin_scope=settings.admin_history_scope,
    )


@history_app.get(
    "/stats/{user_id}",
    summary="Upload statistics for a user",
    responses={403: {"description": "Outside the caller's viewing scope."}},
)
async def statistics(
    user_id: str,
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> StatisticsData:
    allowed = await authorization.can_view(
        viewer_id=caller.user_id,
        record_owner_id=user_id,
        conn=conn,
        log=log,
        admin_scope=settings.admin_history_scope,
    )

    if not allowed:
        raise NotAuthorized("Access denied to this user's statistics")

    return await history_service.get_statistics(user_id=user_id, conn=conn, log=log)
