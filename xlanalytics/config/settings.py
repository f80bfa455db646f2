"""
Service configuration, read from `XLANALYTICS_*` environment variables or a
`.env` file.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import URL

from .managers import AsyncSessionManager, SyncSessionManager

# (sync, async) SQLAlchemy driver names per database type
DRIVERS = {
    "sqlite": ("sqlite", "sqlite+aiosqlite"),
    "postgres": ("postgresql+psycopg", "postgresql+asyncpg"),
}


class Settings(BaseSettings):
    database_type: Literal["sqlite", "postgres"] = "sqlite"
    database_user: str | None = None
    database_password: str | None = None
    database_port: int | None = None
    database_host: str | None = None
    # File path for sqlite, database name for postgres
    database_db: str = "xlanalytics.db"

    database_echo: bool = False

    # Create the table schema at startup
    create_tables: bool = False

    # Identity provider. Tokens are verified against this public key.
    identity_public_key: str | bytes | None = None
    identity_public_key_filename: Path | None = None
    identity_key_pair_type: str = "Ed25519"

    # Whether administrators see the history of their own group only, or of
    # every profile in the system.
    admin_history_scope: Literal["group", "system"] = "group"
    history_limit: int = 100

    # The 'become admin' / 'become user' toggle. Demo/testing only: any
    # signed-in user can grant themselves administrator rights.
    allow_self_service_role_change: bool = False

    model_config = SettingsConfigDict(env_prefix="XLANALYTICS_", env_file=".env")

    def _url(self, asynchronous: bool) -> URL:
        sync_driver, async_driver = DRIVERS[self.database_type]

        return URL.create(
            drivername=async_driver if asynchronous else sync_driver,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_db,
        )

    @property
    def sync_uri(self) -> URL:
        return self._url(asynchronous=False)

    @property
    def async_uri(self) -> URL:
        return self._url(asynchronous=True)

    def sync_manager(self) -> SyncSessionManager:
        return SyncSessionManager(connection_url=self.sync_uri, echo=self.database_echo)

    def async_manager(self) -> AsyncSessionManager:
        return AsyncSessionManager(
            connection_url=self.async_uri, echo=self.database_echo
        )

    def public_key(self) -> bytes | None:
        """
        The identity provider's public key, read from
        `identity_public_key_filename` when set.
        """
        if self.identity_public_key_filename is not None:
            return self.identity_public_key_filename.read_bytes()

        if isinstance(self.identity_public_key, str):
            return self.identity_public_key.encode("utf-8")

        return self.identity_public_key
