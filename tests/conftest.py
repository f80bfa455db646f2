"""
Core configuration
"""

import os

import pytest_asyncio

from xlanalytics.config.settings import Settings
from xlanalytics.core.keys import generate_key_pair

KEY_PASSWORD = "test_password"


@pytest_asyncio.fixture(scope="session")
def database_config(tmp_path_factory):
    if os.environ.get("XLANALYTICS_TEST_POSTGRES"):
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer() as container:
            yield {
                "database_type": "postgres",
                "database_user": container.username,
                "database_password": container.password,
                "database_port": container.get_exposed_port(container.port),
                "database_host": "localhost",
                "database_db": container.dbname,
            }
    else:
        yield {
            "database_type": "sqlite",
            "database_db": str(tmp_path_factory.mktemp("database") / "test.db"),
        }


@pytest_asyncio.fixture(scope="session")
def identity_keys():
    public_key, private_key = generate_key_pair(
        key_pair_type="Ed25519", key_password=KEY_PASSWORD
    )
    yield {
        "public_key": public_key,
        "private_key": private_key,
        "key_password": KEY_PASSWORD,
    }


@pytest_asyncio.fixture(scope="session")
def server_settings(database_config, identity_keys):
    yield Settings(
        **database_config,
        identity_public_key=identity_keys["public_key"],
        identity_key_pair_type="Ed25519",
    )


@pytest_asyncio.fixture(scope="session")
def database(server_settings: Settings):
    server_settings.sync_manager().create_all()
