"""
Identifiers. Groups and the per-profile records are keyed by time-ordered
uuid7 values (not in the standard library as of 3.12); profiles keep the
identity provider's opaque id.
"""

from uuid import UUID

from uuid_extensions import uuid7

__all__ = ["UUID", "uuid7"]
