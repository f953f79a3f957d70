"""
Schedule sources for the listening client.

RadioClient talks to the HTTP API; LocalRadio reads the station store
directly (single-machine setups and tests). Both expose ``now_playing`` and
``skip`` and turn transient failures into SnapshotUnavailable.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import requests
from loguru import logger
from requests.exceptions import RequestException

from loopcast.domain.catalog.models import Track
from loopcast.domain.catalog.store import get_catalog
from loopcast.domain.radio.models import ScheduleSnapshot
from loopcast.domain.radio.query import get_now_playing
from loopcast.domain.radio.skip import skip_track
from loopcast.errors import (
    AuthorizationError,
    LoopcastError,
    NoCurrentTrackError,
    SnapshotUnavailable,
    StorageUnavailableError,
)

DEFAULT_TIMEOUT = 5.0


class RadioClient:
    """HTTP client for the radio API."""

    def __init__(
        self,
        base_url: str,
        station_id: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.station_id = station_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/radio{path}"

    def _params(self) -> dict[str, Any]:
        return {"station": self.station_id} if self.station_id is not None else {}

    def now_playing(self) -> ScheduleSnapshot:
        """Fetch the station's current schedule.

        Raises:
            SnapshotUnavailable: On network errors, non-200 replies or bad bodies
        """
        try:
            response = self.session.get(
                self._url("/now-playing"), params=self._params(), timeout=self.timeout
            )
            response.raise_for_status()
            return ScheduleSnapshot.from_dict(response.json())
        except (RequestException, ValueError) as e:
            raise SnapshotUnavailable(f"now-playing request failed: {e}") from e

    def tracks(self) -> list[Track]:
        """Fetch the station catalog in loop order.

        Raises:
            SnapshotUnavailable: On network errors or non-200 replies
        """
        try:
            response = self.session.get(
                self._url("/tracks"), params=self._params(), timeout=self.timeout
            )
            response.raise_for_status()
            return [
                Track.from_dict(item, play_order=i)
                for i, item in enumerate(response.json())
            ]
        except (RequestException, ValueError, KeyError) as e:
            raise SnapshotUnavailable(f"tracks request failed: {e}") from e

    def login(self, password: str) -> str:
        """Exchange the admin password for a token.

        Raises:
            AuthorizationError: On a refused password or rate limiting
            LoopcastError: On network errors
        """
        try:
            response = self.session.post(
                self._url("/admin/login"),
                json={"password": password},
                timeout=self.timeout,
            )
        except RequestException as e:
            raise LoopcastError(f"login request failed: {e}") from e

        body = _json_or_empty(response)
        if response.status_code == 429:
            raise AuthorizationError("rate_limited")
        if response.status_code != 200 or not body.get("success"):
            raise AuthorizationError(body.get("error") or "invalid_password")
        return body["token"]

    def skip(self, token: str) -> None:
        """Skip the track on air.

        Raises:
            AuthorizationError: If the token is refused
            NoCurrentTrackError: If nothing is on air
            LoopcastError: On network or server errors
        """
        payload: dict[str, Any] = {"token": token}
        if self.station_id is not None:
            payload["station"] = self.station_id

        try:
            response = self.session.post(
                self._url("/skip"), json=payload, timeout=self.timeout
            )
        except RequestException as e:
            raise LoopcastError(f"skip request failed: {e}") from e

        body = _json_or_empty(response)
        if response.status_code == 401:
            raise AuthorizationError(body.get("error") or "invalid_token")
        if response.status_code == 409:
            raise NoCurrentTrackError("Nothing on air to skip")
        if response.status_code != 200 or not body.get("success"):
            raise LoopcastError(f"skip failed with status {response.status_code}")
        logger.info("Skip accepted by server")


def _json_or_empty(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class LocalRadio:
    """In-process schedule source backed by the station store."""

    def __init__(self, station_id: int, preview_size: int = 5):
        self.station_id = station_id
        self.preview_size = preview_size

    def now_playing(self) -> ScheduleSnapshot:
        try:
            return get_now_playing(
                self.station_id,
                datetime.now(timezone.utc),
                preview_size=self.preview_size,
            )
        except StorageUnavailableError as e:
            raise SnapshotUnavailable(str(e)) from e

    def tracks(self) -> list[Track]:
        try:
            return get_catalog(self.station_id)
        except StorageUnavailableError as e:
            raise SnapshotUnavailable(str(e)) from e

    def skip(self, token: str) -> None:
        skip_track(self.station_id, token)
