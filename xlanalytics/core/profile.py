"""
Shared profile objects that are serialized.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from xlanalytics.core.uuid import UUID

Role = Literal["admin", "user"]


class ProfileData(BaseModel):
    user_id: str
    name: str | None
    email: str
    role: Role
    group_id: UUID | None
    photo_url: str | None = None
    phone: str | None = None
    profession: str | None = None
    address: str | None = None
    bio: str | None = None
    about: str | None = None
    interests: list[str] = Field(default_factory=list)
    social_links: dict[str, str] = Field(default_factory=dict)
    extra: dict = Field(default_factory=dict)
    created_at: datetime | None = None


class ActivityLogData(BaseModel):
    activity_id: UUID
    date: str
    login_time: datetime
    logout_time: datetime | None
    total_time: float | None


class FileHistoryData(BaseModel):
    entry_id: UUID
    user_id: str
    type: Literal["upload", "download"]
    file_name: str | None
    url: str | None
    chart_type: str | None
    rows: int
    file_size: int | None
    status: str
    uploaded_at: datetime


class NotificationData(BaseModel):
    notification_id: UUID
    type: str
    group_id: UUID
    group_name: str
    timestamp: datetime
    read: bool


class StatisticsData(BaseModel):
    total_files: int
    analyzed_rows: int
    average_value: int
    max_value: int
