"""
Catalog domain models.

Contains data structures for representing broadcast tracks.
"""

from typing import Any, NamedTuple, Optional


class Track(NamedTuple):
    """Represents one track in a station's loop.

    ``duration`` is the catalog's estimate in whole seconds. It drives the
    shared schedule; a playback engine may later probe a more accurate value
    but that never feeds back into scheduling.
    """

    id: int
    title: str
    artist: str
    duration: int  # in seconds, >= 0
    source_url: str  # Playable source locator
    play_order: int = 0  # Position in the loop
    artwork_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the query interface's track descriptor."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "duration": self.duration,
            "source_url": self.source_url,
            "artwork_url": self.artwork_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], play_order: int = 0) -> "Track":
        """Build a Track from a query interface track descriptor."""
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            artist=data.get("artist") or "",
            duration=int(data.get("duration") or 0),
            source_url=data["source_url"],
            play_order=play_order,
            artwork_url=data.get("artwork_url"),
        )
