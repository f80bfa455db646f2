"""
Exceptions shared by the service layer and mapped to HTTP responses by the API.
"""


class MembershipValidationError(ValueError):
    """
    Missing or malformed input, detected before any store access.
    """


class NotAuthorized(Exception):
    """
    The caller lacks the relationship (usually group administrator) required
    for the operation.
    """


class NotFound(Exception):
    pass


class GroupNotFound(NotFound):
    pass


class ProfileNotFound(NotFound):
    pass


class InvitationNotFound(NotFound):
    pass


class NotificationNotFound(NotFound):
    pass


class HistoryEntryNotFound(NotFound):
    pass


class GroupExistsError(Exception):
    pass


class AdminRemovalError(Exception):
    """
    Raised when an operation would take a group's administrator out of its
    member set.
    """


class StorageError(Exception):
    """
    The underlying store failed for infrastructure reasons. Callers may retry;
    every membership operation is a set union or difference and therefore
    idempotent.
    """
