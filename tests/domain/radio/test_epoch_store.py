"""Tests for the station epoch store and now-playing query."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from loopcast.domain.catalog import add_track
from loopcast.domain.radio import (
    create_station,
    get_epoch,
    get_now_playing,
    list_stations,
    save_epoch,
)
from loopcast.domain.radio.models import Epoch
from loopcast.errors import StorageUnavailableError

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestEpochStore:
    """Tests for create_station / get_epoch / save_epoch."""

    def test_create_and_read_back(self, station_db) -> None:
        created = create_station("Morning Loop", started_at=NOW)
        stored = get_epoch(created.station_id)

        assert stored.name == "Morning Loop"
        assert stored.started_at == NOW
        assert stored.started_at.tzinfo is not None

    def test_unknown_station_is_none(self, station_db) -> None:
        assert get_epoch(42) is None

    def test_empty_name_rejected(self, station_db) -> None:
        with pytest.raises(ValueError):
            create_station("   ")

    def test_save_overwrites(self, station_db) -> None:
        created = create_station("Loop", started_at=NOW)
        moved = replace(created, started_at=NOW - timedelta(seconds=90), updated_at=NOW)

        assert save_epoch(moved) is True
        assert get_epoch(created.station_id).started_at == NOW - timedelta(seconds=90)

    def test_last_write_wins(self, station_db) -> None:
        created = create_station("Loop", started_at=NOW)
        save_epoch(replace(created, started_at=NOW - timedelta(seconds=10)))
        save_epoch(replace(created, started_at=NOW - timedelta(seconds=20)))
        assert get_epoch(created.station_id).started_at == NOW - timedelta(seconds=20)

    def test_save_unknown_station(self, station_db) -> None:
        ghost = Epoch(station_id=99, name="Ghost", started_at=NOW, updated_at=NOW)
        assert save_epoch(ghost) is False

    def test_list_stations_ordered(self, station_db) -> None:
        first = create_station("One", started_at=NOW)
        second = create_station("Two", started_at=NOW)
        assert [e.station_id for e in list_stations()] == [
            first.station_id,
            second.station_id,
        ]

    def test_non_utc_epoch_normalized(self, station_db) -> None:
        offset = timezone(timedelta(hours=2))
        created = create_station("Loop", started_at=NOW.astimezone(offset))
        stored = get_epoch(created.station_id)
        assert stored.started_at == NOW
        assert stored.started_at.utcoffset() == timedelta(0)


class TestGetNowPlaying:
    """Tests for the station-level projection query."""

    def test_projects_stored_station(self, station_db) -> None:
        station = create_station("Loop", started_at=NOW - timedelta(seconds=150))
        add_track(station.station_id, "A", "Artist", 100, "https://cdn.example.com/a.mp3")
        add_track(station.station_id, "B", "Artist", 200, "https://cdn.example.com/b.mp3")

        snapshot = get_now_playing(station.station_id, NOW)
        assert snapshot.current.title == "B"
        assert snapshot.elapsed_seconds == 50
        assert [t.title for t in snapshot.up_next] == ["A"]
        assert snapshot.total_tracks == 2

    def test_stations_are_independent(self, station_db) -> None:
        one = create_station("One", started_at=NOW - timedelta(seconds=10))
        two = create_station("Two", started_at=NOW - timedelta(seconds=10))
        add_track(one.station_id, "Only One", "Artist", 100, "https://cdn.example.com/1.mp3")

        assert get_now_playing(one.station_id, NOW).current.title == "Only One"
        assert get_now_playing(two.station_id, NOW).current is None

    def test_unknown_station_is_no_signal(self, station_db) -> None:
        snapshot = get_now_playing(404, NOW)
        assert snapshot.current is None
        assert snapshot.total_tracks == 0

    def test_storage_failure_propagates(self) -> None:
        with patch(
            "loopcast.domain.radio.query.get_epoch",
            side_effect=StorageUnavailableError("down"),
        ):
            with pytest.raises(StorageUnavailableError):
                get_now_playing(1, NOW)
