"""
Shared FastAPI dependencies: settings, the per-request transaction and the
structured logger.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger
from structlog.typing import FilteringBoundLogger

from xlanalytics.config.settings import Settings


@lru_cache
def SETTINGS() -> Settings:
    return Settings()


DATABASE_MANAGER = SETTINGS().async_manager()


async def get_async_session():
    # One transaction per request; an exception raised by the endpoint rolls
    # back everything it wrote.
    async with DATABASE_MANAGER.transaction() as conn:
        yield conn


def logger() -> FilteringBoundLogger:
    return get_logger()


SettingsDependency = Annotated[Settings, Depends(SETTINGS)]
DatabaseDependency = Annotated[AsyncSession, Depends(get_async_session)]
LoggerDependency = Annotated[FilteringBoundLogger, Depends(logger)]
