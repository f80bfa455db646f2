"""
Core group data models.
"""

from datetime import datetime

from pydantic import BaseModel

from xlanalytics.core.uuid import UUID


class GroupData(BaseModel):
    group_id: UUID
    name: str
    description: str
    admin_id: str
    created_at: datetime
    members: list[str]
    join_requests: list[str]
    pending_invitations: list[str]
