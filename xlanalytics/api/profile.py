"""
The caller's own profile: self-service edits, notifications and activity.
"""

from fastapi import APIRouter

from xlanalytics.core.errors import NotAuthorized
from xlanalytics.core.models import (
    ModifyProfileContent,
    ProfileDetailResponse,
    RoleChangeRequest,
)
from xlanalytics.core.profile import ActivityLogData, NotificationData, ProfileData
from xlanalytics.core.uuid import UUID
from xlanalytics.service import activity as activity_service
from xlanalytics.service import authorization
from xlanalytics.service import profile as profile_service

from .dependencies import DatabaseDependency, LoggerDependency, SettingsDependency
from .identity import CallerDependency

profile_app = APIRouter(tags=["Profile"])


@profile_app.get(
    "/me",
    summary="Get the caller's profile",
    description=(
        "Returns the caller's profile, notifications and activity. The profile "
        "is created on first sign-in."
    ),
)
async def me(caller: CallerDependency, conn: DatabaseDependency) -> ProfileDetailResponse:
    notifications = await profile_service.list_notifications(
        user_id=caller.user_id, conn=conn
    )
    activity = await activity_service.get_activity(user_id=caller.user_id, conn=conn)

    return ProfileDetailResponse(
        profile=caller.to_core(),
        notifications=[x.to_core() for x in notifications],
        activity=[x.to_core() for x in activity],
    )


@profile_app.post(
    "/me",
    summary="Update the caller's profile",
    description="Edit the free-form profile fields. Role and group cannot be changed here.",
)
async def update_me(
    content: ModifyProfileContent,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> ProfileData:
    profile = await profile_service.update_details(
        user_id=caller.user_id,
        changes=content.model_dump(exclude_unset=True),
        conn=conn,
        log=log,
    )
    return profile.to_core()


@profile_app.post(
    "/me/role",
    summary="Switch between the admin and user roles",
    description=(
        "Demo/testing only. Disabled unless `allow_self_service_role_change` "
        "is set."
    ),
    responses={403: {"description": "Self-service role changes are disabled."}},
)
async def change_role(
    content: RoleChangeRequest,
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> ProfileData:
    profile = await profile_service.set_own_role(
        user_id=caller.user_id,
        role=content.role,
        allowed=settings.allow_self_service_role_change,
        conn=conn,
        log=log,
    )
    return profile.to_core()


@profile_app.get("/me/notifications", summary="List the caller's notifications")
async def notifications(
    caller: CallerDependency, conn: DatabaseDependency, unread_only: bool = False
) -> list[NotificationData]:
    result = await profile_service.list_notifications(
        user_id=caller.user_id, conn=conn, unread_only=unread_only
    )
    return [x.to_core() for x in result]


@profile_app.post(
    "/me/notifications/{notification_id}/read",
    summary="Mark a notification as read",
    responses={404: {"description": "Notification not found."}},
)
async def read_notification(
    notification_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> NotificationData:
    notification = await profile_service.mark_notification_read(
        user_id=caller.user_id, notification_id=notification_id, conn=conn, log=log
    )
    return notification.to_core()


@profile_app.post("/me/login", summary="Record a login")
async def login(
    caller: CallerDependency, conn: DatabaseDependency, log: LoggerDependency
) -> ActivityLogData:
    entry = await activity_service.track_login(
        user_id=caller.user_id, conn=conn, log=log
    )
    return entry.to_core()


@profile_app.post("/me/logout", summary="Record a logout")
async def logout(
    caller: CallerDependency, conn: DatabaseDependency, log: LoggerDependency
) -> ActivityLogData | None:
    entry = await activity_service.track_logout(
        user_id=caller.user_id, conn=conn, log=log
    )
    return entry.to_core() if entry is not None else None


@profile_app.get("/me/activity", summary="Get the caller's activity")
async def my_activity(
    caller: CallerDependency, conn: DatabaseDependency
) -> list[ActivityLogData]:
    activity = await activity_service.get_activity(user_id=caller.user_id, conn=conn)
    return [x.to_core() for x in activity]


@profile_app.get(
    "/{user_id}/activity",
    summary="Get a user's activity",
    description=(
        "Login/logout sessions of a user. Users can see their own; "
        "administrators can see those within their viewing scope."
    ),
    responses={403: {"description": "Outside the caller's viewing scope."}},
)
async def user_activity(
    user_id: str,
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[ActivityLogData]:
    allowed = await authorization.can_view(
        viewer_id=caller.user_id,
        record_owner_id=user_id,
        conn=conn,
        log=log,
        admin_scope=settings.admin_history_scope,
    )

    if not allowed:
        raise NotAuthorized("Access denied to this user's activity")

    activity = await activity_service.get_activity(user_id=user_id, conn=conn)
    return [x.to_core() for x in activity]


@profile_app.get(
    "",
    summary="List profiles",
    description=(
        "Administrators list the profiles of their group, or every profile "
        "when the history scope is 'system'."
    ),
    responses={403: {"description": "Caller is not an administrator."}},
)
async def profiles(
    caller: CallerDependency,
    settings: SettingsDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[ProfileData]:
    match authorization.view_scope(caller, admin_scope=settings.admin_history_scope):
        case authorization.ViewScope.SYSTEM:
            return await profile_service.get_profile_list(conn=conn)
        case authorization.ViewScope.GROUP if caller.group_id is not None:
            return await profile_service.get_profile_list(
                conn=conn, group_id=caller.group_id
            )
        case authorization.ViewScope.GROUP:
            return [caller.to_core()]

    await log.awarning("profile.list.not_admin", user_id=caller.user_id)
    raise NotAuthorized("Only administrators can list profiles")
