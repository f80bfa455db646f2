"""
Caller identity, supplied by the external identity provider as a signed
bearer token:

```
Authorization: Bearer <jwt with `sub`, `email` and optionally `name`>
```

The token is verified against `Settings.identity_public_key` and its claims
are trusted as-is. Use the dependencies:

```
@app.get("/endpoint")
async def endpoint(identity: IdentityDependency):
    ...

@app.get("/mine")
async def mine(caller: CallerDependency):
    # The caller's profile, created on first use
    ...
```
"""

from typing import Annotated

from fastapi import Depends, Request
from structlog import get_logger

from xlanalytics.core.auth import IdentityData, decode_identity_token
from xlanalytics.core.tokens import KeyDecodeError, KeyExpiredError
from xlanalytics.database.profile import UserProfile
from xlanalytics.service import profile as profile_service

from .dependencies import DatabaseDependency, LoggerDependency, SettingsDependency


async def handle_identity(
    request: Request, settings: SettingsDependency
) -> IdentityData:
    """
    Raises
    ------
    KeyDecodeError
        If there is no usable token, or it does not verify.
    KeyExpiredError
        If the token has expired.
    """
    log = get_logger()
    log = log.bind(client=request.client)

    if "Authorization" not in request.headers:
        log.debug("identity.no_token")
        raise KeyDecodeError("Log in first")

    contents = request.headers["Authorization"].split(" ")

    if len(contents) != 2 or contents[0] != "Bearer":
        log.debug("identity.malformed_header")
        raise KeyDecodeError("Expected a bearer token")

    public_key = settings.public_key()

    if public_key is None:
        log.error("identity.no_public_key")
        raise KeyDecodeError("Identity verification is not configured")

    try:
        identity = decode_identity_token(
            encrypted_token=contents[1],
            public_key=public_key,
            key_pair_type=settings.identity_key_pair_type,
        )
    except KeyDecodeError as e:
        log.debug("identity.no_decode")
        raise e
    except KeyExpiredError as e:
        log.debug("identity.expired")
        raise e

    log.debug("identity.success", user_id=identity.user_id)

    return identity


IdentityDependency = Annotated[IdentityData, Depends(handle_identity)]


async def handle_caller(
    identity: IdentityDependency,
    conn: DatabaseDependency,
    log: LoggerDependency,
) -> UserProfile:
    return await profile_service.get_or_create(
        user_id=identity.user_id,
        email=identity.email,
        name=identity.name,
        conn=conn,
        log=log,
    )


CallerDependency = Annotated[UserProfile, Depends(handle_caller)]
