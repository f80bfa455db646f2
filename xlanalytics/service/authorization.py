"""
Viewing scopes for history and activity records.

Scopes are derived from the stored profile on every call and never cached,
since a profile's role and group can change between requests.
"""

import enum
from typing import Callable, Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.database.group import Group, GroupMembership
from xlanalytics.database.profile import UserProfile

from . import profile as profile_service

AdminScope = Literal["group", "system"]


class ViewScope(str, enum.Enum):
    OWN = "own"
    GROUP = "group"
    SYSTEM = "system"


def view_scope(profile: UserProfile, admin_scope: AdminScope = "group") -> ViewScope:
    """
    Administrators see their group's records, or every record when
    `admin_scope` is "system". Everyone else sees only their own.
    """
    if not profile.is_admin:
        return ViewScope.OWN

    if admin_scope == "system":
        return ViewScope.SYSTEM

    return ViewScope.GROUP


def is_group_admin(user_id: str, group: Group) -> bool:
    return group.admin_id == user_id


async def visible_owner_ids(
    viewer_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    admin_scope: AdminScope = "group",
) -> set[str] | None:
    """
    The profile ids whose records `viewer_id` may see, or `None` for all of
    them.

    Raises
    ------
    ProfileNotFound
        If the viewer has no profile.
    """
    log = log.bind(viewer_id=viewer_id, admin_scope=admin_scope)

    viewer = await profile_service.read_by_id(user_id=viewer_id, conn=conn)
    scope = view_scope(viewer, admin_scope=admin_scope)

    log = log.bind(scope=scope.value)

    match scope:
        case ViewScope.SYSTEM:
            await log.adebug("authorization.scope_resolved")
            return None
        case ViewScope.GROUP if viewer.group_id is not None:
            result = await conn.execute(
                select(GroupMembership.user_id).where(
                    GroupMembership.group_id == viewer.group_id
                )
            )
            owners = set(result.scalars().all()) | {viewer_id}
        case _:
            owners = {viewer_id}

    await log.adebug("authorization.scope_resolved", number_of_owners=len(owners))

    return owners


async def view_predicate(
    viewer_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    admin_scope: AdminScope = "group",
) -> Callable[[str], bool]:
    """
    Build `can_view(record_owner_id) -> bool` for `viewer_id`. Build a new
    predicate for every request.
    """
    owners = await visible_owner_ids(
        viewer_id=viewer_id, conn=conn, log=log, admin_scope=admin_scope
    )

    if owners is None:
        return lambda record_owner_id: True

    return lambda record_owner_id: record_owner_id in owners


async def can_view(
    viewer_id: str,
    record_owner_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    admin_scope: AdminScope = "group",
) -> bool:
    predicate = await view_predicate(
        viewer_id=viewer_id, conn=conn, log=log, admin_scope=admin_scope
    )

    allowed = predicate(record_owner_id)

    if not allowed:
        await log.ainfo(
            "authorization.denied", viewer_id=viewer_id, record_owner_id=record_owner_id
        )

    return allowed
