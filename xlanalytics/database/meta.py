"""
Meta functionality for the database.
"""

from .activity import ActivityLog
from .group import Group, GroupInvitation, GroupJoinRequest, GroupMembership
from .history import FileHistoryItem
from .notification import Notification
from .profile import UserProfile

ALL_TABLES = (
    ActivityLog,
    FileHistoryItem,
    Group,
    GroupInvitation,
    GroupJoinRequest,
    GroupMembership,
    Notification,
    UserProfile,
)
