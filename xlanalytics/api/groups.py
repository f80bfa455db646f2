"""
Group management and the membership workflow.
"""

from fastapi import APIRouter

from xlanalytics.core.errors import NotAuthorized
from xlanalytics.core.group import GroupData
from xlanalytics.core.models import (
    GroupCreationRequest,
    GroupDetailResponse,
    InvitationResult,
    InviteRequest,
    JoinStateResponse,
)
from xlanalytics.core.profile import ProfileData
from xlanalytics.core.uuid import UUID
from xlanalytics.database.group import Group
from xlanalytics.database.profile import UserProfile
from xlanalytics.service import authorization
from xlanalytics.service import groups as groups_service

from .dependencies import DatabaseDependency, LoggerDependency
from .identity import CallerDependency, IdentityDependency

group_app = APIRouter(tags=["Group Management"])


async def _require_group_admin(group: Group, caller: UserProfile, log):
    if not authorization.is_group_admin(caller.user_id, group):
        await log.awarning("group.access_denied.not_admin")
        raise NotAuthorized("Only the group administrator can do this")


@group_app.put(
    "",
    summary="Create a new group",
    description=(
        "Create a new group administered by the caller. The caller becomes "
        "the group's first member and is given the admin role."
    ),
    responses={
        200: {"description": "Group created successfully."},
        400: {"description": "Invalid input data."},
        409: {"description": "The caller already administers a group."},
    },
)
async def create_group(
    content: GroupCreationRequest,
    identity: IdentityDependency,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    log = log.bind(user_id=caller.user_id)

    group = await groups_service.create_group(
        admin_id=caller.user_id,
        name=content.name,
        description=content.description,
        admin_name=identity.name,
        admin_email=identity.email,
        conn=conn,
        log=log,
    )

    return group.to_core()


@group_app.get(
    "/{group_id}",
    summary="Get group by ID",
    description=(
        "Retrieve a group with its members, join requests and pending "
        "invitations. Only members of the group may read it."
    ),
    responses={
        200: {"description": "Group details."},
        403: {"description": "Access denied to this group."},
        404: {"description": "Group not found."},
    },
)
async def get_group(
    group_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupDetailResponse:
    log = log.bind(user_id=caller.user_id)
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)

    if not group.has_member(caller.user_id):
        await log.awarning("group.access_denied")
        raise NotAuthorized("Access denied to this group")

    return GroupDetailResponse(
        group=group.to_core(),
        member_count=len(group.members),
        is_admin=authorization.is_group_admin(caller.user_id, group),
    )


@group_app.post(
    "/{group_id}/invite",
    summary="Invite a user by email",
    description=(
        "Registered users receive a join request and a notification; other "
        "addresses are kept as pending invitations. Expected failures (already "
        "a member, already invited) are reported in the response body."
    ),
    responses={
        200: {"description": "Outcome of the invitation."},
        403: {"description": "Caller is not the group administrator."},
        404: {"description": "Group not found."},
    },
)
async def invite(
    group_id: UUID,
    content: InviteRequest,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> InvitationResult:
    return await groups_service.invite_user_to_group(
        group_id=group_id,
        email=content.email,
        caller_admin_id=caller.user_id,
        conn=conn,
        log=log,
    )


@group_app.post(
    "/{group_id}/request",
    summary="Ask to join a group",
    responses={
        200: {"description": "Join request recorded."},
        404: {"description": "Group not found."},
    },
)
async def request_join(
    group_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> JoinStateResponse:
    group = await groups_service.request_join_group(
        group_id=group_id, user_id=caller.user_id, conn=conn, log=log
    )

    return JoinStateResponse(
        group_id=group.group_id,
        state=groups_service.join_state(group, caller.user_id, caller.email).value,
    )


@group_app.post(
    "/{group_id}/accept",
    summary="Accept an email invitation",
    description="Join a group the caller's email address was invited to.",
    responses={
        200: {"description": "The caller is now a member."},
        404: {"description": "Group or invitation not found."},
    },
)
async def accept_invitation(
    group_id: UUID,
    identity: IdentityDependency,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> JoinStateResponse:
    group = await groups_service.accept_invitation_by_email(
        group_id=group_id,
        user_id=caller.user_id,
        email=identity.email,
        conn=conn,
        log=log,
    )

    return JoinStateResponse(
        group_id=group.group_id,
        state=groups_service.join_state(group, caller.user_id, caller.email).value,
    )


@group_app.post(
    "/{group_id}/requests/{user_id}/approve",
    summary="Approve a join request",
    responses={
        200: {"description": "Request approved (or there was none)."},
        403: {"description": "Caller is not the group administrator."},
        404: {"description": "Group or user not found."},
    },
)
async def approve_request(
    group_id: UUID,
    user_id: str,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    log = log.bind(caller_id=caller.user_id)
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    await _require_group_admin(group, caller, log)

    group = await groups_service.approve_join_request(
        group_id=group_id, user_id=user_id, conn=conn, log=log
    )

    return group.to_core()


@group_app.post(
    "/{group_id}/requests/{user_id}/reject",
    summary="Reject a join request",
    responses={
        200: {"description": "Request rejected."},
        403: {"description": "Caller is not the group administrator."},
        404: {"description": "Group not found."},
    },
)
async def reject_request(
    group_id: UUID,
    user_id: str,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    log = log.bind(caller_id=caller.user_id)
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    await _require_group_admin(group, caller, log)

    group = await groups_service.reject_join_request(
        group_id=group_id, user_id=user_id, conn=conn, log=log
    )

    return group.to_core()


@group_app.delete(
    "/{group_id}/members/{user_id}",
    summary="Remove a member",
    description=(
        "Remove a member from the group. The administrator may remove anyone "
        "but themselves; members may remove themselves (leave)."
    ),
    responses={
        200: {"description": "Member removed."},
        403: {"description": "Access denied."},
        404: {"description": "Group or user not found."},
        409: {"description": "The administrator cannot be removed."},
    },
)
async def remove_member(
    group_id: UUID,
    user_id: str,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> GroupData:
    log = log.bind(caller_id=caller.user_id)
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)

    if user_id != caller.user_id:
        await _require_group_admin(group, caller, log)

    group = await groups_service.remove_user_from_group(
        group_id=group_id, user_id=user_id, conn=conn, log=log
    )

    return group.to_core()


@group_app.get(
    "/{group_id}/members",
    summary="List group members",
    responses={
        200: {"description": "Profiles of the group's members."},
        403: {"description": "Caller is not a member."},
    },
)
async def members(
    group_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[ProfileData]:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)

    if not group.has_member(caller.user_id):
        await log.awarning("group.members.access_denied", user_id=caller.user_id)
        raise NotAuthorized("Access denied to this group")

    users = await groups_service.get_group_users(group_id=group_id, conn=conn, log=log)
    return [x.to_core() for x in users]


@group_app.get(
    "/{group_id}/requests",
    summary="List join requests",
    responses={
        200: {"description": "Profiles waiting for approval."},
        403: {"description": "Caller is not the group administrator."},
    },
)
async def join_requests(
    group_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[ProfileData]:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    await _require_group_admin(group, caller, log)

    requests = await groups_service.get_join_requests(
        group_id=group_id, conn=conn, log=log
    )
    return [x.to_core() for x in requests]


@group_app.get(
    "/{group_id}/invitations",
    summary="List pending email invitations",
    responses={
        200: {"description": "Invited email addresses."},
        403: {"description": "Caller is not the group administrator."},
    },
)
async def invitations(
    group_id: UUID,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> list[str]:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    await _require_group_admin(group, caller, log)

    return await groups_service.get_pending_invitations(
        group_id=group_id, conn=conn, log=log
    )


@group_app.get(
    "/{group_id}/invitations/{email}",
    summary="Check whether an email address has a pending invitation",
    responses={
        200: {"description": "Whether the address is invited."},
        403: {"description": "Caller is not the group administrator."},
    },
)
async def is_invited(
    group_id: UUID,
    email: str,
    caller: CallerDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> bool:
    group = await groups_service.read_by_id(group_id=group_id, conn=conn, log=log)
    await _require_group_admin(group, caller, log)

    return await groups_service.is_user_invited(
        group_id=group_id, email=email, conn=conn, log=log
    )
