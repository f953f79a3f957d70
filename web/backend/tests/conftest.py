"""Pytest configuration for backend tests.

Each test gets its own SQLite store, admin secrets, default config and a
fresh login rate limiter.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from loopcast.core.config import Config
from loopcast.core.database import init_database
from loopcast.domain.radio.auth import LoginRateLimiter
from web.backend.deps import get_config, get_login_limiter
from web.backend.main import app

ADMIN_PASSWORD = "hunter2"
SIGNING_SECRET = "backend-test-secret"


@pytest.fixture
def limiter() -> LoginRateLimiter:
    return LoginRateLimiter(max_attempts=5, window_seconds=15 * 60)


@pytest.fixture
def client(tmp_path, monkeypatch, limiter):
    """TestClient backed by a throwaway database."""
    monkeypatch.setenv("LOOPCAST_DB_PATH", str(tmp_path / "api.db"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("LOOPCAST_SIGNING_SECRET", SIGNING_SECRET)
    init_database()

    app.dependency_overrides[get_config] = lambda: Config()
    app.dependency_overrides[get_login_limiter] = lambda: limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_station(client):
    """Station 1: A (100s) then B (200s), 50s into A."""
    from loopcast.domain.catalog import add_track
    from loopcast.domain.radio import create_station

    station = create_station(
        "API Station", started_at=datetime.now(timezone.utc) - timedelta(seconds=50)
    )
    add_track(station.station_id, "A", "Artist", 100, "https://cdn.example.com/a.mp3")
    add_track(station.station_id, "B", "Artist", 200, "https://cdn.example.com/b.mp3")
    return station
