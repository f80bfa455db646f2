"""
Tests reading the service configuration.
"""

import pytest
from pydantic import ValidationError

from xlanalytics.config.settings import Settings


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XLANALYTICS_DATABASE_TYPE", "postgres")
    monkeypatch.setenv("XLANALYTICS_DATABASE_USER", "reports")
    monkeypatch.setenv("XLANALYTICS_DATABASE_HOST", "db")
    monkeypatch.setenv("XLANALYTICS_DATABASE_PORT", "5433")
    monkeypatch.setenv("XLANALYTICS_DATABASE_DB", "analytics")
    monkeypatch.setenv("XLANALYTICS_ADMIN_HISTORY_SCOPE", "system")

    settings = Settings()

    assert settings.admin_history_scope == "system"
    assert settings.sync_uri.drivername == "postgresql+psycopg"
    assert settings.async_uri.drivername == "postgresql+asyncpg"
    assert settings.async_uri.host == "db"
    assert settings.async_uri.port == 5433
    assert settings.async_uri.database == "analytics"


def test_public_key_from_file(monkeypatch, tmp_path, identity_keys):
    monkeypatch.chdir(tmp_path)
    key_file = tmp_path / "identity.pub"
    key_file.write_bytes(identity_keys["public_key"])

    settings = Settings(identity_public_key_filename=key_file)
    assert settings.public_key() == identity_keys["public_key"]


def test_unknown_settings_are_rejected(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValidationError):
        Settings(hostname="http://localhost:8000")
