"""
Engines and session factories for the configured database.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import URL
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, create_engine

# Registers every table on SQLModel.metadata
from xlanalytics.database import meta  # noqa: F401


class SyncSessionManager:
    """
    Synchronous engine, only used for schema management (the `setup` command
    and the test fixtures). The service layer is asynchronous.
    """

    def __init__(self, connection_url: str | URL, echo: bool = False):
        self.connection_url = connection_url
        self.engine = create_engine(connection_url, echo=echo)

    def create_all(self):
        SQLModel.metadata.create_all(self.engine)

    def drop_all(self):
        """
        Drop every table. Deletes all data; only for tests.
        """
        SQLModel.metadata.drop_all(self.engine)


class AsyncSessionManager:
    """
    Asynchronous sessions for the service layer:

    manager = AsyncSessionManager(conn_url)

    async with manager.session() as conn:
        async with conn.begin():
            group = await groups_service.read_by_id(group_id, conn=conn, log=log)

    Services flush but never commit. Everything done inside one `conn.begin()`
    block, for instance the group and profile halves of a membership change,
    commits or rolls back together.
    """

    def __init__(self, connection_url: str | URL, echo: bool = False):
        self.connection_url = connection_url
        self.engine = create_async_engine(connection_url, echo=echo)
        # Objects stay readable after commit, for building responses
        self.session = async_sessionmaker(self.engine, expire_on_commit=False)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        A session with an open transaction, committed on exit or rolled back
        if the block raises.
        """
        async with self.session() as conn:
            async with conn.begin():
                yield conn

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def drop_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)
