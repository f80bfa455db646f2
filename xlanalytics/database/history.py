"""
Uploaded/downloaded file descriptors.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from xlanalytics.core.profile import FileHistoryData
from xlanalytics.core.uuid import UUID, uuid7


class FileHistoryItem(SQLModel, table=True):
    entry_id: UUID = Field(primary_key=True, default_factory=uuid7)

    user_id: str = Field(
        foreign_key="userprofile.user_id", ondelete="CASCADE", index=True
    )

    type: str = "upload"
    file_name: str | None = None
    # Storage locator; the file itself lives elsewhere
    url: str | None = None
    chart_type: str | None = None
    rows: int = 0
    file_size: int | None = None
    status: str = "Uploaded"

    uploaded_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))

    def to_core(self) -> FileHistoryData:
        return FileHistoryData(
            entry_id=self.entry_id,
            user_id=self.user_id,
            type=self.type,
            file_name=self.file_name,
            url=self.url,
            chart_type=self.chart_type,
            rows=self.rows,
            file_size=self.file_size,
            status=self.status,
            uploaded_at=self.uploaded_at,
        )
