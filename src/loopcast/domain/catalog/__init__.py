"""
Catalog domain module.

Provides the ordered track list each station loops over.
"""

from .models import Track
from .store import add_track, get_catalog, get_track

__all__ = [
    "Track",
    "add_track",
    "get_catalog",
    "get_track",
]
