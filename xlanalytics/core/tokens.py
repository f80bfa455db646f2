"""
Signing and verifying identity tokens: JWTs carrying `sub` (the user id),
`email` and optionally `name`.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from .keys import (
    KeyLoadError,
    UnsupportedKeyType,
    load_signing_key,
    load_verification_key,
)

ALGORITHMS = {"Ed25519": "EdDSA"}

REQUIRED_CLAIMS = ["sub", "email", "exp"]


class KeyDecodeError(Exception):
    pass


class KeyExpiredError(Exception):
    pass


def algorithm_for(key_pair_type: str) -> str:
    try:
        return ALGORITHMS[key_pair_type]
    except KeyError:
        raise UnsupportedKeyType(f"Key pair type {key_pair_type} is not supported")


def build_identity_payload(
    user_id: str, email: str, name: str | None, validity: timedelta
) -> dict[str, Any]:
    """
    Builds the payload the identity provider would issue for a signed-in user.
    """

    current_time = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "email": email,
        "exp": current_time + validity,
        "nbf": current_time,
        "iat": current_time,
    }

    if name is not None:
        payload["name"] = name

    return payload


def sign_identity_token(
    payload: dict[str, Any],
    private_key: bytes,
    key_password: str,
    key_pair_type: str,
) -> str:
    """
    Sign an identity payload. Only the development CLI and the tests do this;
    in production tokens come from the identity provider.

    Parameters
    ----------
    payload
        Claims, usually from `build_identity_payload`.
    private_key
        The encrypted PEM private key.
    key_password
        The password the private key is encrypted with.
    key_pair_type
        The type of key (e.g. Ed25519).
    """

    key = load_signing_key(
        private_key=private_key, key_password=key_password, key_pair_type=key_pair_type
    )

    return jwt.encode(payload=payload, key=key, algorithm=algorithm_for(key_pair_type))


def verify_identity_token(
    webtoken: str | bytes, public_key: bytes, key_pair_type: str
) -> dict[str, Any]:
    """
    Check the signature and validity window of an identity token and return
    its claims.

    Raises
    ------
    KeyExpiredError
        If the token has expired.
    KeyDecodeError
        For any other problem: bad signature, missing claims, or an unusable
        public key.
    """

    try:
        key = load_verification_key(public_key=public_key, key_pair_type=key_pair_type)
        algorithm = algorithm_for(key_pair_type)
    except (KeyLoadError, UnsupportedKeyType) as e:
        raise KeyDecodeError(str(e))

    try:
        return jwt.decode(
            jwt=webtoken,
            key=key,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise KeyExpiredError("Identity token has expired")
    except jwt.InvalidTokenError:
        raise KeyDecodeError("Unable to verify identity token")
