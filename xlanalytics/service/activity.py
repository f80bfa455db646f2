"""
Service layer for login/logout activity tracking.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.database.activity import ActivityLog

from . import profile as profile_service
from .storage import flush


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _close(entry: ActivityLog, at: datetime):
    entry.logout_time = at
    entry.total_time = (at - _as_utc(entry.login_time)).total_seconds()


async def _open_sessions(user_id: str, conn: AsyncSession) -> list[ActivityLog]:
    result = await conn.execute(
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id)
        .where(ActivityLog.logout_time.is_(None))
        .order_by(ActivityLog.login_time.desc())
    )
    return list(result.scalars().all())


async def track_login(
    user_id: str, conn: AsyncSession, log: FilteringBoundLogger
) -> ActivityLog:
    """
    Open a new session. A profile has at most one open session, so any
    session still open is closed at the time of this login.

    Raises
    ------
    ProfileNotFound
        If the user does not exist.
    """
    log = log.bind(user_id=user_id)

    await profile_service.read_by_id(user_id=user_id, conn=conn)

    current_time = datetime.now(timezone.utc)

    for entry in await _open_sessions(user_id=user_id, conn=conn):
        _close(entry, current_time)
        conn.add(entry)
        await log.ainfo("activity.closed_stale", activity_id=entry.activity_id)

    entry = ActivityLog(
        user_id=user_id,
        date=current_time.date().isoformat(),
        login_time=current_time,
    )

    conn.add(entry)
    await flush(conn, log)

    await log.ainfo("activity.login", activity_id=entry.activity_id)

    return entry


async def track_logout(
    user_id: str, conn: AsyncSession, log: FilteringBoundLogger
) -> ActivityLog | None:
    """
    Close the open session, if there is one.
    """
    log = log.bind(user_id=user_id)

    open_sessions = await _open_sessions(user_id=user_id, conn=conn)

    if not open_sessions:
        await log.ainfo("activity.logout.no_session")
        return None

    current_time = datetime.now(timezone.utc)

    for entry in open_sessions:
        _close(entry, current_time)
        conn.add(entry)

    await flush(conn, log)

    await log.ainfo("activity.logout", activity_id=open_sessions[0].activity_id)

    return open_sessions[0]


async def get_activity(user_id: str, conn: AsyncSession) -> list[ActivityLog]:
    """
    All sessions for a user, oldest first.
    """
    result = await conn.execute(
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id)
        .order_by(ActivityLog.login_time)
    )
    return list(result.scalars().all())
