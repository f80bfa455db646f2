"""
Notifications attached to a profile.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from xlanalytics.core.profile import NotificationData
from xlanalytics.core.uuid import UUID, uuid7


class Notification(SQLModel, table=True):
    notification_id: UUID = Field(primary_key=True, default_factory=uuid7)

    user_id: str = Field(
        foreign_key="userprofile.user_id", ondelete="CASCADE", index=True
    )

    type: str
    group_id: UUID
    group_name: str
    timestamp: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    read: bool = False

    def to_core(self) -> NotificationData:
        return NotificationData(
            notification_id=self.notification_id,
            type=self.type,
            group_id=self.group_id,
            group_name=self.group_name,
            timestamp=self.timestamp,
            read=self.read,
        )
