"""
Pydantic models for request/responses to APIs.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from xlanalytics.core.group import GroupData
from xlanalytics.core.profile import (
    ActivityLogData,
    FileHistoryData,
    NotificationData,
    ProfileData,
    Role,
)
from xlanalytics.core.uuid import UUID


class InvitationResult(BaseModel):
    """
    Outcome of an invitation. Expected failures (bad input, invitee already in
    the requested state) are reported here rather than raised, and `message`
    is meant to be shown to the inviting administrator as-is.
    """

    success: bool
    message: str
    reason: Literal["validation", "already_in_state"] | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class GroupCreationRequest(BaseModel):
    name: str
    description: str = ""


class InviteRequest(BaseModel):
    email: str


class ModifyProfileContent(BaseModel):
    name: str | None = None
    photo_url: str | None = None
    phone: str | None = None
    profession: str | None = None
    address: str | None = None
    bio: str | None = None
    about: str | None = None
    interests: list[str] | None = None
    social_links: dict[str, str] | None = None
    extra: dict[str, Any] | None = None


class RoleChangeRequest(BaseModel):
    role: Role


class HistoryEntryRequest(BaseModel):
    type: Literal["upload", "download"] = "upload"
    file_name: str | None = None
    url: str | None = None
    chart_type: str | None = None
    rows: int = 0
    file_size: int | None = None
    status: str | None = None


class GroupDetailResponse(BaseModel):
    group: GroupData
    member_count: int
    is_admin: bool


class ProfileDetailResponse(BaseModel):
    profile: ProfileData
    notifications: list[NotificationData]
    activity: list[ActivityLogData]


class HistoryResponse(BaseModel):
    history: list[FileHistoryData]


class JoinStateResponse(BaseModel):
    group_id: UUID
    # none, invited, email_pending or member
    state: str
