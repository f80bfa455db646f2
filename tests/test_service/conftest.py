"""
Configuration variables and fixtures for the service layer tests.
"""

import pytest_asyncio
import structlog

from xlanalytics.config.settings import Settings
from xlanalytics.core.uuid import uuid7
from xlanalytics.service import groups as groups_service
from xlanalytics.service import profile as profile_service


@pytest_asyncio.fixture(scope="session")
def session_manager(server_settings: Settings, database):
    yield server_settings.async_manager()


@pytest_asyncio.fixture(scope="session")
def logger():
    yield structlog.get_logger()


@pytest_asyncio.fixture(loop_scope="session")
async def make_profile(session_manager, logger):
    """
    Create a profile with a unique id (and email unless one is given),
    returning the user id.
    """

    async def make(name: str | None = None, email: str | None = None) -> str:
        user_id = f"user-{uuid7().hex}"

        async with session_manager.session() as conn:
            async with conn.begin():
                await profile_service.create(
                    user_id=user_id,
                    email=email or f"{user_id}@example.com",
                    name=name,
                    conn=conn,
                    log=logger,
                )

        return user_id

    yield make


@pytest_asyncio.fixture(loop_scope="session")
async def make_group(session_manager, logger, make_profile):
    """
    Create an administrator and their group, returning (admin_id, group_id).
    """

    async def make(name: str = "Finance") -> tuple:
        admin_id = await make_profile(name="Group Admin")

        async with session_manager.session() as conn:
            async with conn.begin():
                group = await groups_service.create_group(
                    admin_id=admin_id,
                    name=name,
                    description="desc",
                    conn=conn,
                    log=logger,
                )
                group_id = group.group_id

        return admin_id, group_id

    yield make


@pytest_asyncio.fixture(loop_scope="session")
async def read_state(session_manager, logger):
    """
    Read a group (as `GroupData`) and, optionally, one profile (as
    `ProfileData`) in a fresh transaction.
    """

    async def read(group_id, user_id: str | None = None):
        async with session_manager.session() as conn:
            async with conn.begin():
                group = await groups_service.read_by_id(
                    group_id=group_id, conn=conn, log=logger
                )
                group_data = group.to_core()

                if user_id is None:
                    return group_data, None

                profile = await profile_service.read_by_id(user_id=user_id, conn=conn)
                return group_data, profile.to_core()

    yield read
