"""
Group ORM
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

from xlanalytics.core.group import GroupData
from xlanalytics.core.uuid import UUID, uuid7

if TYPE_CHECKING:
    from .profile import UserProfile


class GroupMembership(SQLModel, table=True):
    """
    A record of a profile's group membership.
    """

    user_id: Optional[str] = Field(
        primary_key=True, foreign_key="userprofile.user_id", ondelete="CASCADE"
    )
    group_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="group.group_id", ondelete="CASCADE"
    )


class GroupJoinRequest(SQLModel, table=True):
    """
    A profile waiting for the group administrator's approval, either because
    they asked to join or because the administrator invited them.
    """

    user_id: Optional[str] = Field(
        primary_key=True, foreign_key="userprofile.user_id", ondelete="CASCADE"
    )
    group_id: Optional[UUID] = Field(
        primary_key=True, foreign_key="group.group_id", ondelete="CASCADE"
    )


class GroupInvitation(SQLModel, table=True):
    """
    An invitation sent to an email address that has no profile yet.
    """

    group_id: UUID = Field(
        primary_key=True, foreign_key="group.group_id", ondelete="CASCADE"
    )
    # Normalized (trimmed, lower case)
    email: str = Field(primary_key=True)
    invited_at: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True)), default=None
    )

    group: "Group" = Relationship(back_populates="invitations")


class Group(SQLModel, table=True):
    group_id: UUID = Field(primary_key=True, default_factory=uuid7)

    name: str
    description: str = ""
    admin_id: str = Field(foreign_key="userprofile.user_id")
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    updated_at: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True)), default=None
    )

    members: list["UserProfile"] = Relationship(
        link_model=GroupMembership,
        sa_relationship_kwargs=dict(lazy="selectin"),
    )
    join_requests: list["UserProfile"] = Relationship(
        link_model=GroupJoinRequest,
        sa_relationship_kwargs=dict(lazy="selectin"),
    )
    invitations: list[GroupInvitation] = Relationship(
        back_populates="group",
        sa_relationship_kwargs=dict(lazy="selectin", cascade="all, delete-orphan"),
    )

    @property
    def member_ids(self) -> set[str]:
        return {x.user_id for x in self.members}

    @property
    def join_request_ids(self) -> set[str]:
        return {x.user_id for x in self.join_requests}

    @property
    def pending_invitations(self) -> set[str]:
        return {x.email for x in self.invitations}

    def has_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def has_join_request(self, user_id: str) -> bool:
        return user_id in self.join_request_ids

    def invitation_for(self, email: str) -> GroupInvitation | None:
        """
        Find the pending invitation for `email`, which must already be normalized.
        """
        for invitation in self.invitations:
            if invitation.email == email:
                return invitation

        return None

    def to_core(self) -> GroupData:
        """
        Convert this Group ORM object to a GroupData core object.
        """
        return GroupData(
            group_id=self.group_id,
            name=self.name,
            description=self.description,
            admin_id=self.admin_id,
            created_at=self.created_at,
            members=sorted(self.member_ids),
            join_requests=sorted(self.join_request_ids),
            pending_invitations=sorted(self.pending_invitations),
        )
