"""
Fixtures for exercising the API in-process.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from xlanalytics.config.settings import Settings
from xlanalytics.core.tokens import build_identity_payload, sign_identity_token
from xlanalytics.core.uuid import uuid7


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def client(server_settings: Settings, database):
    from xlanalytics.api import dependencies
    from xlanalytics.api.app import app

    manager = server_settings.async_manager()

    async def get_async_session():
        async with manager.transaction() as conn:
            yield conn

    app.dependency_overrides[dependencies.get_async_session] = get_async_session
    app.dependency_overrides[dependencies.SETTINGS] = lambda: server_settings

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def identity(identity_keys):
    """
    Sign identity tokens the way the identity provider would. Returns a
    callable producing (user_id, email, headers) for a new identity.
    """

    def make(name: str | None = None, email: str | None = None, validity=None):
        user_id = f"api-{uuid7().hex}"
        email = email or f"{user_id}@example.com"

        token = sign_identity_token(
            key_password=identity_keys["key_password"],
            private_key=identity_keys["private_key"],
            key_pair_type="Ed25519",
            payload=build_identity_payload(
                user_id=user_id,
                email=email,
                name=name,
                validity=validity or timedelta(hours=1),
            ),
        )

        return user_id, email, {"Authorization": f"Bearer {token}"}

    return make
