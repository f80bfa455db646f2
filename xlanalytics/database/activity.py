"""
Login/logout session tracking.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from xlanalytics.core.profile import ActivityLogData
from xlanalytics.core.uuid import UUID, uuid7


class ActivityLog(SQLModel, table=True):
    activity_id: UUID = Field(primary_key=True, default_factory=uuid7)

    user_id: str = Field(
        foreign_key="userprofile.user_id", ondelete="CASCADE", index=True
    )

    # ISO date (YYYY-MM-DD) of the login
    date: str
    login_time: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    logout_time: datetime | None = Field(
        sa_column=Column(DateTime(timezone=True)), default=None
    )
    # Seconds, filled in at logout
    total_time: float | None = None

    @property
    def is_open(self) -> bool:
        return self.logout_time is None

    def to_core(self) -> ActivityLogData:
        return ActivityLogData(
            activity_id=self.activity_id,
            date=self.date,
            login_time=self.login_time,
            logout_time=self.logout_time,
            total_time=self.total_time,
        )
