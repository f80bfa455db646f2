"""
Service layer for user profiles.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.core.errors import (
    MembershipValidationError,
    NotAuthorized,
    NotificationNotFound,
    ProfileNotFound,
)
from xlanalytics.core.profile import ProfileData
from xlanalytics.core.uuid import UUID
from xlanalytics.database.notification import Notification
from xlanalytics.database.profile import UserProfile, normalize_email

from .storage import flush

ROLES = ("admin", "user")

SELF_SERVICE_FIELDS = (
    "name",
    "photo_url",
    "phone",
    "profession",
    "address",
    "bio",
    "about",
    "interests",
    "social_links",
    "extra",
)


async def create(
    user_id: str,
    email: str,
    name: str | None,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> UserProfile:
    """
    Create the profile for a user signing in for the first time. The role
    always starts as `user`.
    """

    if not user_id or not user_id.strip():
        raise MembershipValidationError("User ID is required")

    if not email or not email.strip():
        raise MembershipValidationError("User email is required")

    email = normalize_email(email)

    log = log.bind(user_id=user_id, email=email)

    profile = UserProfile(
        user_id=user_id,
        email=email,
        name=name,
        role="user",
        created_at=datetime.now(timezone.utc),
    )

    conn.add(profile)
    await flush(conn, log)

    await log.ainfo("profile.created")

    return profile


async def read_by_id(user_id: str, conn: AsyncSession) -> UserProfile:
    res = await conn.get(UserProfile, user_id)

    if res is None:
        raise ProfileNotFound(f"Profile with ID {user_id} not found in the database")

    return res


async def read_by_email(email: str, conn: AsyncSession) -> UserProfile:
    email = normalize_email(email)

    query = select(UserProfile).filter(UserProfile.email == email)
    res = (await conn.execute(query)).unique().scalar_one_or_none()

    if res is None:
        raise ProfileNotFound(f"Profile with email {email} not found in the database")

    return res


async def get_or_create(
    user_id: str,
    email: str,
    name: str | None,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> UserProfile:
    """
    Read the profile for an authenticated identity, creating it implicitly
    on first use.
    """
    try:
        return await read_by_id(user_id=user_id, conn=conn)
    except ProfileNotFound:
        return await create(
            user_id=user_id, email=email, name=name, conn=conn, log=log
        )


async def get_profile_list(
    conn: AsyncSession, group_id: UUID | None = None
) -> list[ProfileData]:
    """
    Get a list of profiles, optionally only those belonging to `group_id`.
    """
    query = select(UserProfile)

    if group_id is not None:
        query = query.filter(UserProfile.group_id == group_id)

    res = (await conn.execute(query)).unique().scalars().all()
    return [p.to_core() for p in res]


async def update_details(
    user_id: str,
    changes: dict[str, Any],
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> UserProfile:
    """
    Self-service edit of the free-form profile fields. Membership fields
    (role, group, email) cannot be changed through here.
    """
    unknown = set(changes) - set(SELF_SERVICE_FIELDS)

    if unknown:
        raise MembershipValidationError(
            f"Fields {', '.join(sorted(unknown))} cannot be edited"
        )

    log = log.bind(user_id=user_id, fields=sorted(changes))

    profile = await read_by_id(user_id=user_id, conn=conn)

    for key, value in changes.items():
        setattr(profile, key, value)

    conn.add(profile)
    await flush(conn, log)

    await log.ainfo("profile.updated")

    return profile


async def set_own_role(
    user_id: str,
    role: str,
    allowed: bool,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> UserProfile:
    """
    The 'become admin' / 'become user' toggle. This lets any user grant
    themselves administrator rights, so it is only honoured when `allowed`
    (the `allow_self_service_role_change` setting) is on.
    """
    log = log.bind(user_id=user_id, role=role)

    if not allowed:
        await log.awarning("profile.role_change.disabled")
        raise NotAuthorized("Self-service role changes are disabled")

    if role not in ROLES:
        raise MembershipValidationError(f"Unknown role {role}")

    profile = await read_by_id(user_id=user_id, conn=conn)
    profile.role = role

    conn.add(profile)
    await flush(conn, log)

    await log.awarning("profile.role_changed")

    return profile


async def add_notification(
    user_id: str,
    type: str,
    group_id: UUID,
    group_name: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        group_id=group_id,
        group_name=group_name,
        timestamp=datetime.now(timezone.utc),
        read=False,
    )

    conn.add(notification)
    await flush(conn, log)

    await log.ainfo(
        "profile.notification_added",
        notification_id=notification.notification_id,
        notification_type=type,
    )

    return notification


async def list_notifications(
    user_id: str, conn: AsyncSession, unread_only: bool = False
) -> list[Notification]:
    query = select(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.read.is_(False))

    query = query.order_by(Notification.timestamp.desc())

    return list((await conn.execute(query)).scalars().all())


async def mark_notification_read(
    user_id: str,
    notification_id: UUID,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Notification:
    log = log.bind(user_id=user_id, notification_id=notification_id)

    notification = await conn.get(Notification, notification_id)

    if notification is None or notification.user_id != user_id:
        await log.ainfo("profile.notification_not_found")
        raise NotificationNotFound(f"Notification {notification_id} not found")

    notification.read = True
    conn.add(notification)
    await flush(conn, log)

    await log.adebug("profile.notification_read")

    return notification
