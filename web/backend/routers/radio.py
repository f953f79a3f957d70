"""
Radio station API endpoints.

Read side: the projected schedule and the catalog, open to every listener.
Write side: admin login and skip, gated by a signed capability token.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from loopcast.core.config import Config
from loopcast.domain.radio.auth import LoginRateLimiter
from loopcast.errors import (
    AuthorizationError,
    NoCurrentTrackError,
    StationNotFoundError,
    StorageUnavailableError,
)
from web.backend.deps import get_config, get_login_limiter

router = APIRouter(prefix="/radio", tags=["radio"])


# === Pydantic Models ===


class TrackResponse(BaseModel):
    """Track descriptor for API responses."""

    id: int
    title: str
    artist: str
    duration: int
    source_url: str
    artwork_url: Optional[str] = None


class NowPlayingResponse(BaseModel):
    """Projected schedule for API responses."""

    current_track: Optional[TrackResponse]
    elapsed_seconds: int
    up_next: list[TrackResponse]
    total_tracks: int


class LoginRequest(BaseModel):
    """Request body for admin login."""

    password: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None


class SkipRequest(BaseModel):
    """Request body for skipping the broadcast track."""

    token: Optional[str] = None
    station: Optional[int] = None


class SkipResponse(BaseModel):
    success: bool
    error: Optional[str] = None


# === Helper Functions ===


def _track_to_response(track) -> TrackResponse:
    """Convert Track NamedTuple to response model."""
    return TrackResponse(
        id=track.id,
        title=track.title,
        artist=track.artist,
        duration=track.duration,
        source_url=track.source_url,
        artwork_url=track.artwork_url,
    )


def _client_key(request: Request) -> str:
    """Identify the caller for login rate limiting."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": error}
    )


# === Query Interface ===


@router.get("/now-playing", response_model=NowPlayingResponse)
def get_now_playing(
    station: Optional[int] = None, config: Config = Depends(get_config)
) -> NowPlayingResponse:
    """Get what the station has on air right now.

    An unknown station or empty catalog is "no signal", not an error.
    """
    from loopcast.domain.radio import get_now_playing as _get_now_playing

    station_id = station if station is not None else config.station.default_station_id
    try:
        snapshot = _get_now_playing(station_id, preview_size=config.station.preview_size)
    except StorageUnavailableError as e:
        logger.error(f"now-playing failed for station {station_id}: {e}")
        raise HTTPException(status_code=503, detail="Schedule temporarily unavailable")

    return NowPlayingResponse(
        current_track=_track_to_response(snapshot.current) if snapshot.current else None,
        elapsed_seconds=snapshot.elapsed_seconds,
        up_next=[_track_to_response(t) for t in snapshot.up_next],
        total_tracks=snapshot.total_tracks,
    )


@router.get("/tracks", response_model=list[TrackResponse])
def list_tracks(
    station: Optional[int] = None, config: Config = Depends(get_config)
) -> list[TrackResponse]:
    """List a station's catalog in loop order."""
    from loopcast.domain.catalog import get_catalog

    station_id = station if station is not None else config.station.default_station_id
    try:
        catalog = get_catalog(station_id)
    except StorageUnavailableError as e:
        logger.error(f"tracks failed for station {station_id}: {e}")
        raise HTTPException(status_code=503, detail="Catalog temporarily unavailable")

    return [_track_to_response(t) for t in catalog]


# === Mutation Interface ===


@router.post("/admin/login", response_model=LoginResponse)
def admin_login(
    body: LoginRequest,
    request: Request,
    config: Config = Depends(get_config),
    limiter: LoginRateLimiter = Depends(get_login_limiter),
):
    """Exchange the admin password for a short-lived skip token."""
    from loopcast.domain.radio import login

    try:
        token = login(
            body.password,
            _client_key(request),
            limiter,
            ttl_seconds=config.auth.token_ttl_seconds,
        )
    except AuthorizationError as e:
        return _failure(429 if e.code == "rate_limited" else 401, e.code)

    return LoginResponse(success=True, token=token)


@router.post("/skip", response_model=SkipResponse)
def skip(body: SkipRequest, config: Config = Depends(get_config)):
    """Skip the track on air; every listener moves to the next one."""
    from loopcast.domain.radio import skip_track

    station_id = (
        body.station if body.station is not None else config.station.default_station_id
    )
    try:
        skip_track(station_id, body.token)
    except AuthorizationError as e:
        logger.warning(f"Skip refused for station {station_id}: {e.code}")
        return _failure(401, e.code)
    except NoCurrentTrackError:
        return _failure(409, "no_current_track")
    except StationNotFoundError:
        return _failure(404, "station_not_found")
    except StorageUnavailableError as e:
        logger.error(f"Skip failed for station {station_id}: {e}")
        return _failure(503, "storage_unavailable")

    return SkipResponse(success=True)
