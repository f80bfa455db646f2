"""
ORM for user profiles.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from xlanalytics.core.profile import ProfileData
from xlanalytics.core.uuid import UUID


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserProfile(SQLModel, table=True):
    # Opaque identifier handed to us by the identity provider
    user_id: str = Field(primary_key=True)

    name: str | None = None
    # Always stored normalized, so uniqueness is case-insensitive
    email: str = Field(unique=True, index=True)

    role: str = Field(default="user")

    # The group this profile belongs to. Kept consistent with the group's
    # member set by the membership service, inside the same transaction.
    group_id: UUID | None = Field(default=None, index=True)

    photo_url: str | None = None
    phone: str | None = None
    profession: str | None = None
    address: str | None = None
    bio: str | None = None
    about: str | None = None
    interests: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    social_links: dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    extra: dict = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True)), default=None
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_core(self) -> ProfileData:
        return ProfileData(
            user_id=self.user_id,
            name=self.name,
            email=self.email,
            role=self.role,
            group_id=self.group_id,
            photo_url=self.photo_url,
            phone=self.phone,
            profession=self.profession,
            address=self.address,
            bio=self.bio,
            about=self.about,
            interests=self.interests or [],
            social_links=self.social_links or {},
            extra=self.extra or {},
            created_at=self.created_at,
        )
