"""
Service layer for groups and the membership workflow.

Every operation that touches both a group and a profile performs both writes
in the caller's transaction (`async with conn.begin()`), so they are committed
or rolled back together. All set mutations are unions or differences and can
be retried safely.
"""

import enum
import re
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from xlanalytics.core.errors import (
    AdminRemovalError,
    GroupExistsError,
    GroupNotFound,
    InvitationNotFound,
    MembershipValidationError,
    NotAuthorized,
    ProfileNotFound,
)
from xlanalytics.core.models import InvitationResult
from xlanalytics.core.uuid import UUID
from xlanalytics.database.group import Group, GroupInvitation, GroupJoinRequest
from xlanalytics.database.profile import UserProfile, normalize_email

from . import profile as profile_service
from .storage import flush, insert_if_absent

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class JoinState(str, enum.Enum):
    """
    Where a (user, group) pair sits in the join lifecycle.
    """

    NONE = "none"
    INVITED = "invited"
    EMAIL_PENDING = "email_pending"
    MEMBER = "member"


def join_state(
    group: Group, user_id: str | None, email: str | None = None
) -> JoinState:
    if user_id is not None:
        if group.has_member(user_id):
            return JoinState.MEMBER
        if group.has_join_request(user_id):
            return JoinState.INVITED

    if email is not None:
        if group.invitation_for(normalize_email(email)) is not None:
            return JoinState.EMAIL_PENDING

    return JoinState.NONE


def _require(value, message: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MembershipValidationError(message)


def _as_group_id(group_id: UUID | str) -> UUID:
    if isinstance(group_id, UUID):
        return group_id

    try:
        return UUID(group_id)
    except (ValueError, TypeError):
        raise MembershipValidationError(f"Invalid group ID {group_id}")


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


async def read_by_id(
    group_id: UUID | str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Read a group by its ID.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    _require(group_id, "Group ID is required")
    group_id = _as_group_id(group_id)

    log = log.bind(group_id=group_id)
    group = await conn.get(Group, group_id)

    if group is None:
        await log.ainfo("group.not_found")
        raise GroupNotFound(f"Group with id {group_id} not found")

    await log.adebug("group.found")
    return group


async def _assign_profile(
    profile: UserProfile,
    group_id: UUID | None,
    role: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
):
    """
    The profile half of a membership change.
    """
    profile.group_id = group_id
    profile.role = role
    conn.add(profile)
    await flush(conn, log)
    await log.adebug("group.profile_assigned", assigned_group_id=group_id, role=role)


async def _detach_from_current_group(
    profile: UserProfile,
    new_group_id: UUID,
    conn: AsyncSession,
    log: FilteringBoundLogger,
):
    """
    A profile belongs to at most one group; take it out of the member set of
    the group it currently belongs to before it joins `new_group_id`.
    """
    if profile.group_id is None or profile.group_id == new_group_id:
        return

    current = await conn.get(Group, profile.group_id)

    if current is None:
        return

    if current.admin_id == profile.user_id:
        await log.awarning("group.detach.is_admin", current_group_id=current.group_id)
        raise AdminRemovalError(
            f"User {profile.user_id} administers group {current.group_id} "
            "and cannot leave it"
        )

    current.members = [x for x in current.members if x.user_id != profile.user_id]
    current.updated_at = _now()
    conn.add(current)

    await log.ainfo("group.detached", previous_group_id=current.group_id)


async def create_group(
    admin_id: str,
    name: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
    description: str = "",
    admin_name: str | None = None,
    admin_email: str | None = None,
) -> Group:
    """
    Create a new group administered by `admin_id`.

    Parameters
    ----------
    admin_id: str
        The profile creating the group. It becomes the group's only
        administrator and first member.
    name: str
        Name of the group; must not be blank.
    description: str
        Optional free-text description.
    admin_name: str | None
        When given, backfills the administrator's profile name.
    admin_email: str | None
        When given, backfills the administrator's profile email.

    Raises
    ------
    MembershipValidationError
        If the name or administrator is missing.
    ProfileNotFound
        If the administrator has no profile.
    GroupExistsError
        If the administrator already administers a group.
    """
    _require(admin_id, "Admin user ID is required")
    _require(name, "Group name is required")

    name = name.strip()
    description = (description or "").strip()

    log = log.bind(admin_id=admin_id, group_name=name)

    try:
        profile = await profile_service.read_by_id(user_id=admin_id, conn=conn)
    except ProfileNotFound as e:
        await log.ainfo("group.create.admin_not_found")
        raise e

    if profile.group_id is not None:
        current = await conn.get(Group, profile.group_id)

        if current is not None and current.admin_id == admin_id:
            await log.ainfo("group.create.already_admin", group_id=current.group_id)
            raise GroupExistsError(
                f"User {admin_id} already administers group {current.group_id}"
            )

    current_time = _now()

    group = Group(
        name=name,
        description=description,
        admin_id=admin_id,
        created_at=current_time,
        updated_at=current_time,
        members=[profile],
        join_requests=[],
        invitations=[],
    )

    await _detach_from_current_group(profile, group.group_id, conn, log)

    conn.add(group)
    await flush(conn, log)

    if admin_name:
        profile.name = admin_name
    if admin_email:
        profile.email = normalize_email(admin_email)

    await _assign_profile(profile, group.group_id, "admin", conn, log)

    await log.ainfo("group.created", group_id=group.group_id)

    return group


async def invite_user_to_group(
    group_id: UUID | str,
    email: str,
    caller_admin_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> InvitationResult:
    """
    Invite someone to a group by email.

    A registered invitee is added to the group's join requests (they still
    have to be approved) and receives a `group_invite` notification. An
    unregistered address is added to the pending invitations.

    Invalid input and invitees already in the requested state are reported
    through the returned `InvitationResult`.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    NotAuthorized
        If `caller_admin_id` is not the group's administrator.
    """
    try:
        _require(group_id, "Group ID is required")
        _require(email, "User email is required")
        _require(caller_admin_id, "Admin user ID is required")
        group_id = _as_group_id(group_id)

        normalized_email = normalize_email(email)

        if not EMAIL_PATTERN.match(normalized_email):
            raise MembershipValidationError("Invalid email format")
    except MembershipValidationError as e:
        await log.ainfo("group.invite.invalid", error=str(e))
        return InvitationResult(
            success=False,
            message=str(e),
            reason="validation",
            data={"error": str(e)},
        )

    log = log.bind(
        group_id=group_id, email=normalized_email, caller_admin_id=caller_admin_id
    )

    group = await read_by_id(group_id=group_id, conn=conn, log=log)

    if group.admin_id != caller_admin_id:
        await log.awarning("group.invite.not_admin")
        raise NotAuthorized("Only group admin can invite users")

    try:
        invitee = await profile_service.read_by_email(email=normalized_email, conn=conn)
    except ProfileNotFound:
        invitee = None

    if invitee is not None:
        display_name = invitee.name or "User"
        log = log.bind(user_id=invitee.user_id)

        if group.has_member(invitee.user_id):
            await log.ainfo("group.invite.already_member")
            return InvitationResult(
                success=False,
                message=f"{display_name} is already a member of this group",
                reason="already_in_state",
                data={
                    "user_id": invitee.user_id,
                    "email": normalized_email,
                    "is_member": True,
                },
            )

        already_pending = InvitationResult(
            success=False,
            message=f"{display_name} already has a pending join request",
            reason="already_in_state",
            data={
                "user_id": invitee.user_id,
                "email": normalized_email,
                "has_pending_request": True,
            },
        )

        if group.has_join_request(invitee.user_id):
            await log.ainfo("group.invite.already_pending")
            return already_pending

        inserted = await insert_if_absent(
            GroupJoinRequest,
            conn=conn,
            log=log,
            user_id=invitee.user_id,
            group_id=group.group_id,
        )
        await conn.refresh(group, attribute_names=["join_requests"])

        if not inserted:
            # Added by a concurrent transaction since the group was read
            await log.ainfo("group.invite.already_pending", concurrent=True)
            return already_pending

        group.updated_at = _now()
        conn.add(group)
        await flush(conn, log)

        await profile_service.add_notification(
            user_id=invitee.user_id,
            type="group_invite",
            group_id=group.group_id,
            group_name=group.name,
            conn=conn,
            log=log,
        )

        await log.ainfo("group.invite.join_request_sent")

        return InvitationResult(
            success=True,
            message=f"Join request sent to {invitee.name or 'user'}",
            data={
                "user_id": invitee.user_id,
                "email": normalized_email,
                "notification_sent": True,
            },
        )

    already_invited = InvitationResult(
        success=False,
        message="This user has already been invited",
        reason="already_in_state",
        data={"email": normalized_email, "already_invited": True},
    )

    if group.invitation_for(normalized_email) is not None:
        await log.ainfo("group.invite.already_invited")
        return already_invited

    inserted = await insert_if_absent(
        GroupInvitation,
        conn=conn,
        log=log,
        group_id=group.group_id,
        email=normalized_email,
        invited_at=_now(),
    )
    await conn.refresh(group, attribute_names=["invitations"])

    if not inserted:
        await log.ainfo("group.invite.already_invited", concurrent=True)
        return already_invited

    group.updated_at = _now()
    conn.add(group)
    await flush(conn, log)

    await log.ainfo("group.invite.email_invited")

    return InvitationResult(
        success=True,
        message=f"Invitation sent to {normalized_email}",
        data={"email": normalized_email, "invitation_sent": True},
    )


async def request_join_group(
    group_id: UUID | str,
    user_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Ask to join a group. Asking twice, or asking while already a member, is a
    no-op.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    ProfileNotFound
        If the user does not exist.
    """
    _require(user_id, "User ID is required")

    log = log.bind(group_id=group_id, user_id=user_id)
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    await profile_service.read_by_id(user_id=user_id, conn=conn)

    match join_state(group, user_id):
        case JoinState.MEMBER:
            await log.ainfo("group.request.already_member")
            return group
        case JoinState.INVITED:
            await log.ainfo("group.request.already_requested")
            return group

    inserted = await insert_if_absent(
        GroupJoinRequest, conn=conn, log=log, user_id=user_id, group_id=group.group_id
    )
    await conn.refresh(group, attribute_names=["join_requests"])

    if not inserted:
        await log.ainfo("group.request.already_requested", concurrent=True)
        return group

    group.updated_at = _now()
    conn.add(group)
    await flush(conn, log)

    await log.ainfo("group.request.created")

    return group


async def approve_join_request(
    group_id: UUID | str,
    user_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Move a user from the group's join requests to its members, and point
    their profile at the group.

    Approving a user without a pending request (for instance after it was
    rejected) changes nothing.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    ProfileNotFound
        If the user does not exist.
    AdminRemovalError
        If the user administers another group.
    """
    _require(user_id, "User ID is required")

    log = log.bind(group_id=group_id, user_id=user_id)
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    profile = await profile_service.read_by_id(user_id=user_id, conn=conn)

    if not group.has_join_request(user_id):
        await log.ainfo("group.approve.no_request")
        return group

    await _detach_from_current_group(profile, group.group_id, conn, log)

    group.join_requests = [x for x in group.join_requests if x.user_id != user_id]
    if not group.has_member(user_id):
        group.members.append(profile)
    group.updated_at = _now()
    conn.add(group)
    await flush(conn, log)

    await _assign_profile(profile, group.group_id, "user", conn, log)

    await log.ainfo("group.approve.member_added")

    return group


async def reject_join_request(
    group_id: UUID | str,
    user_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Drop a user's join request. The user's profile is left untouched.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    """
    _require(user_id, "User ID is required")

    log = log.bind(group_id=group_id, user_id=user_id)
    group = await read_by_id(group_id=group_id, conn=conn, log=log)

    if not group.has_join_request(user_id):
        await log.ainfo("group.reject.no_request")
        return group

    group.join_requests = [x for x in group.join_requests if x.user_id != user_id]
    group.updated_at = _now()
    conn.add(group)
    await flush(conn, log)

    await log.ainfo("group.reject.request_removed")

    return group


async def remove_user_from_group(
    group_id: UUID | str,
    user_id: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Remove a member from a group and reset their profile to an unaffiliated
    `user`.

    Raises
    ------
    GroupNotFound
        If the group does not exist.
    ProfileNotFound
        If the user does not exist.
    AdminRemovalError
        If the user is the group's administrator.
    """
    _require(user_id, "User ID is required")

    log = log.bind(group_id=group_id, user_id=user_id)
    group = await read_by_id(group_id=group_id, conn=conn, log=log)

    if group.admin_id == user_id:
        await log.awarning("group.remove.is_admin")
        raise AdminRemovalError("The group administrator cannot be removed")

    profile = await profile_service.read_by_id(user_id=user_id, conn=conn)

    if group.has_member(user_id):
        group.members = [x for x in group.members if x.user_id != user_id]
        group.updated_at = _now()
        conn.add(group)
        await flush(conn, log)
        await log.ainfo("group.remove.member_removed")
    else:
        await log.ainfo("group.remove.not_member")

    if profile.group_id == group.group_id:
        await _assign_profile(profile, None, "user", conn, log)

    return group


async def accept_invitation_by_email(
    group_id: UUID | str,
    user_id: str,
    email: str,
    conn: AsyncSession,
    log: FilteringBoundLogger,
) -> Group:
    """
    Turn a pending email invitation into membership once the invitee has
    registered. The caller is responsible for `email` belonging to `user_id`;
    the API passes the email from the verified identity.

    Raises
    ------
    MembershipValidationError
        If an argument is missing.
    GroupNotFound
        If the group does not exist.
    InvitationNotFound
        If `email` has no pending invitation for this group.
    ProfileNotFound
        If the user does not exist.
    AdminRemovalError
        If the user administers another group.
    """
    _require(user_id, "User ID is required")
    _require(email, "User email is required")

    normalized_email = normalize_email(email)

    log = log.bind(group_id=group_id, user_id=user_id, email=normalized_email)
    group = await read_by_id(group_id=group_id, conn=conn, log=log)

    invitation = group.invitation_for(normalized_email)

    if invitation is None:
        await log.ainfo("group.accept.not_invited")
        raise InvitationNotFound(
            f"No pending invitation for {normalized_email} in group {group.group_id}"
        )

    profile = await profile_service.read_by_id(user_id=user_id, conn=conn)

    await _detach_from_current_group(profile, group.group_id, conn, log)

    group.invitations.remove(invitation)
    group.join_requests = [x for x in group.join_requests if x.user_id != user_id]
    if not group.has_member(user_id):
        group.members.append(profile)
    group.updated_at = _now()
    conn.add(group)
    await flush(conn, log)

    await _assign_profile(profile, group.group_id, "user", conn, log)

    await log.ainfo("group.accept.member_added")

    return group


async def get_group_users(
    group_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger
) -> list[UserProfile]:
    """
    Profiles that are members of the group.
    """
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    return sorted(group.members, key=lambda x: x.user_id)


async def get_pending_invitations(
    group_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger
) -> list[str]:
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    return sorted(group.pending_invitations)


async def get_join_requests(
    group_id: UUID | str, conn: AsyncSession, log: FilteringBoundLogger
) -> list[UserProfile]:
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    return sorted(group.join_requests, key=lambda x: x.user_id)


async def is_user_invited(
    group_id: UUID | str, email: str, conn: AsyncSession, log: FilteringBoundLogger
) -> bool:
    group = await read_by_id(group_id=group_id, conn=conn, log=log)
    return group.invitation_for(normalize_email(email)) is not None
