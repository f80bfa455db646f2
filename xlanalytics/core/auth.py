"""
One-stop functionality for decoding identity tokens
"""

from datetime import datetime, timezone

from cachetools import TTLCache, cached
from pydantic import BaseModel, ValidationError

from xlanalytics.core.tokens import (
    KeyDecodeError,
    KeyExpiredError,
    verify_identity_token,
)


class IdentityData(BaseModel):
    """
    The caller identity supplied by the identity provider. Trusted as-is once
    the token signature has been verified.
    """

    user_id: str
    email: str
    name: str | None = None
    expires_at: datetime


@cached(cache=TTLCache(maxsize=256, ttl=600))
def _verified_identity(
    encrypted_token: str | bytes, public_key: bytes, key_pair_type: str
) -> IdentityData:
    payload = verify_identity_token(
        webtoken=encrypted_token,
        public_key=public_key,
        key_pair_type=key_pair_type,
    )

    try:
        return IdentityData(
            user_id=payload["sub"],
            email=payload["email"],
            name=payload.get("name"),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError, ValidationError):
        raise KeyDecodeError("Error reconstructing the identity")


def decode_identity_token(
    encrypted_token: str | bytes, public_key: str | bytes, key_pair_type: str
) -> IdentityData:
    """
    Verify a token and return the identity it carries. Signature checks are
    cached; the expiry is checked on every call, cached or not.

    Raises
    ------
    KeyDecodeError
        When there is a problem decoding the key
    KeyExpiredError
        When the key has expired
    """

    if isinstance(public_key, str):
        public_key = public_key.encode("utf-8")

    identity = _verified_identity(
        encrypted_token=encrypted_token,
        public_key=public_key,
        key_pair_type=key_pair_type,
    )

    if identity.expires_at <= datetime.now(timezone.utc):
        raise KeyExpiredError("Identity token has expired")

    return identity
