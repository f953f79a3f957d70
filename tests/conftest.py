"""Shared fixtures: a throwaway SQLite store and admin secrets."""

from datetime import datetime, timezone

import pytest

from loopcast.core.database import init_database

SECRET = "test-signing-secret"
PASSWORD = "hunter2"
NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def station_db(tmp_path, monkeypatch):
    """Point the store at a fresh SQLite file."""
    db_path = tmp_path / "loopcast.db"
    monkeypatch.setenv("LOOPCAST_DB_PATH", str(db_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    init_database()
    return db_path


@pytest.fixture
def admin_env(monkeypatch):
    """Configure the admin password and token signing key."""
    monkeypatch.setenv("LOOPCAST_SIGNING_SECRET", SECRET)
    monkeypatch.setenv("ADMIN_PASSWORD", PASSWORD)
    return SECRET
