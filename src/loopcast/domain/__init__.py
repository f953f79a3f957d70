"""Business logic: track catalog, broadcast schedule and client playback."""
