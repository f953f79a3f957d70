"""
Playback engines for the listening client.

The state machine only needs a handful of transport operations; MpvEngine
provides them by driving mpv over its JSON IPC socket.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from loguru import logger

from loopcast.errors import PlaybackRejected

# Seconds to wait for mpv to report a duration after loadfile
METADATA_TIMEOUT = 2.0

# Position slack when deciding a track has finished
END_TOLERANCE = 0.5


class PlaybackEngine(Protocol):
    """Transport operations the playback state machine issues."""

    def load(self, source: str) -> None: ...
    def seek(self, position: float) -> None: ...
    def play(self) -> None: ...  # May raise PlaybackRejected
    def pause(self) -> None: ...
    def set_volume(self, volume: float) -> None: ...  # 0..1
    def position(self) -> Optional[float]: ...
    def duration(self) -> Optional[float]: ...
    def is_finished(self) -> bool: ...


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


class MpvEngine:
    """mpv subprocess controlled through JSON IPC.

    mpv is started idle and paused with ``keep-open`` so the end of a file
    leaves ``eof-reached`` set instead of unloading it.
    """

    def __init__(self, socket_path: Optional[str] = None, volume: float = 0.8):
        if socket_path is None:
            socket_path = str(
                Path(tempfile.gettempdir()) / f"loopcast-mpv-{os.getpid()}.sock"
            )
        self.socket_path = socket_path
        self.initial_volume = volume
        self.process: Optional[subprocess.Popen] = None

    # --- lifecycle ---

    def start(self, timeout: float = 5.0) -> bool:
        """Start mpv and wait for its IPC socket.

        Returns:
            True if mpv is running and answering commands
        """
        logger.info(f"Starting MPV player with socket: {self.socket_path}")

        if os.path.exists(self.socket_path):
            logger.debug(f"Removing existing socket: {self.socket_path}")
            os.unlink(self.socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            "--pause",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={round(self.initial_volume * 100)}",
            "--keep-open=yes",
            "--load-scripts=no",
        ]

        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start MPV: {e}")
            return False

        start_time = time.time()
        while not os.path.exists(self.socket_path):
            if time.time() - start_time > timeout:
                logger.error(f"MPV socket creation timeout after {timeout}s")
                self.stop()
                return False
            time.sleep(0.1)

        if self._command("get_property", "idle-active") is None:
            logger.error("MPV socket connection test failed")
            self.stop()
            return False

        logger.info("MPV started successfully")
        return True

    def stop(self) -> None:
        """Stop the mpv process and remove its socket."""
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"MPV cleanup: {e}")
            self.process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                logger.debug(f"Could not remove socket {self.socket_path}")

    def is_running(self) -> bool:
        return (
            self.process is not None
            and self.process.poll() is None
            and os.path.exists(self.socket_path)
        )

    # --- IPC ---

    def _command(self, *args: Any) -> Optional[dict[str, Any]]:
        """Send one IPC command.

        Returns:
            Decoded reply when mpv reports success, None otherwise
        """
        if not os.path.exists(self.socket_path):
            return None

        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(2.0)
                sock.connect(self.socket_path)
                sock.sendall((json.dumps({"command": list(args)}) + "\n").encode("utf-8"))
                response = sock.recv(4096).decode("utf-8")
        except OSError as e:
            logger.debug(f"MPV command {args[0]} failed: {e}")
            return None

        # mpv may interleave event lines; the reply is the line carrying "error"
        for line in response.splitlines():
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if "error" in data:
                return data if data["error"] == "success" else None
        return None

    def _get_property(self, name: str) -> Any:
        reply = self._command("get_property", name)
        return reply.get("data") if reply else None

    def _set_property(self, name: str, value: Any) -> bool:
        return self._command("set_property", name, value) is not None

    # --- PlaybackEngine ---

    def load(self, source: str) -> None:
        """Load ``source`` paused and wait briefly for its metadata."""
        self._set_property("pause", True)
        if self._command("loadfile", source, "replace") is None:
            logger.warning(f"MPV refused to load {source}")
            return

        elapsed = 0.0
        poll_interval = 0.05
        while elapsed < METADATA_TIMEOUT:
            duration = self._get_property("duration")
            if duration and duration > 0:
                logger.debug(f"Metadata loaded: duration={duration:.2f}s")
                return
            time.sleep(poll_interval)
            elapsed += poll_interval
        logger.warning(f"Metadata load incomplete after {METADATA_TIMEOUT}s: {source}")

    def seek(self, position: float) -> None:
        if self._command("seek", position, "absolute") is None:
            logger.debug(f"MPV seek to {position:.1f}s failed")

    def play(self) -> None:
        if not self.is_running() or not self._set_property("pause", False):
            raise PlaybackRejected("mpv did not accept play")

    def pause(self) -> None:
        self._set_property("pause", True)

    def set_volume(self, volume: float) -> None:
        self._set_property("volume", round(max(0.0, min(1.0, volume)) * 100))

    def position(self) -> Optional[float]:
        return self._get_property("time-pos")

    def duration(self) -> Optional[float]:
        return self._get_property("duration")

    def is_finished(self) -> bool:
        """Check if the loaded file played to its end."""
        if self._get_property("eof-reached") is not True:
            return False
        position = self._get_property("time-pos") or 0.0
        duration = self._get_property("duration") or 0.0
        return duration <= 0 or position >= duration - END_TOLERANCE
