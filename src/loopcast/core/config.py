"""
Configuration management for Loopcast
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class StationConfig:
    """Configuration for the broadcast station."""

    default_station_id: int = 1
    name: str = "Loopcast Radio"
    preview_size: int = 5  # Number of upcoming tracks in the queue display


@dataclass
class ServerConfig:
    """Configuration for the HTTP API."""

    host: str = "127.0.0.1"
    port: int = 8642
    base_url: str = "http://127.0.0.1:8642"
    allowed_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )


@dataclass
class PlayerConfig:
    """Configuration for the listening client."""

    mpv_socket_path: Optional[str] = None
    volume: int = 80  # 0-100, converted to 0..1 for the state machine
    poll_interval: float = 5.0  # Seconds between schedule polls
    engine_check_interval: float = 1.0  # Seconds between engine progress checks
    resync_tolerance: float = 5.0  # Max seconds paused before a live resume reloads

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 0 <= self.volume <= 100:
            raise ValueError(f"Invalid volume: {self.volume}. Must be 0-100")
        if self.poll_interval <= 0:
            raise ValueError(
                f"Invalid poll_interval: {self.poll_interval}. Must be positive"
            )
        if self.engine_check_interval <= 0:
            raise ValueError(
                f"Invalid engine_check_interval: {self.engine_check_interval}. "
                "Must be positive"
            )


@dataclass
class AuthConfig:
    """Configuration for admin capability tokens."""

    token_ttl_seconds: int = 3600
    max_login_attempts: int = 5
    login_window_seconds: int = 15 * 60


@dataclass
class DatabaseConfig:
    """Configuration for the SQLite store (ignored when DATABASE_URL is set)."""

    path: Optional[str] = None  # Default: ~/.local/share/loopcast/loopcast.db


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/loopcast/loopcast.log)
    )
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    station: StationConfig = field(default_factory=StationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "loopcast"
    return Path.home() / ".config" / "loopcast"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. LOOPCAST_CONFIG environment variable
    2. Project root (detected via pyproject.toml) - for development
    3. Current working directory
    4. XDG_CONFIG_HOME/loopcast (or ~/.config/loopcast)
    """
    env_config = os.environ.get("LOOPCAST_CONFIG")
    if env_config:
        return Path(env_config).expanduser()

    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "loopcast"
    return Path.home() / ".local" / "share" / "loopcast"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Loopcast Configuration
# Secrets are read from the environment (or a .env file in the config dir):
#   ADMIN_PASSWORD           password exchanged for an admin token
#   LOOPCAST_SIGNING_SECRET  HMAC key used to sign admin tokens
#   DATABASE_URL             optional postgres:// URL

[station]
default_station_id = 1
name = "Loopcast Radio"

# Number of upcoming tracks shown in the queue
preview_size = 5

[server]
host = "127.0.0.1"
port = 8642
base_url = "http://127.0.0.1:8642"

[player]
# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/loopcast-mpv.sock"

# Default volume (0-100)
volume = 80

# Seconds between schedule polls
poll_interval = 5.0

# Seconds a live listener may stay paused before resume reloads the broadcast
resync_tolerance = 5.0

[auth]
token_ttl_seconds = 3600
max_login_attempts = 5
login_window_seconds = 900

[logging]
level = "INFO"
console_output = false
"""


def _section(toml_data: dict, name: str) -> dict:
    value = toml_data.get(name, {})
    return value if isinstance(value, dict) else {}


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from file, falling back to defaults.

    A missing file is not an error: the defaults describe a local
    single-station setup.

    Args:
        path: Explicit config file (default: see get_config_path)

    Returns:
        Parsed Config

    Raises:
        ValueError: If the file exists but contains invalid values
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = path or get_config_path()
    config = Config()

    if not config_path.exists():
        return config

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid configuration file {config_path}: {e}") from e

    station_data = _section(toml_data, "station")
    config.station = StationConfig(
        default_station_id=int(
            station_data.get("default_station_id", config.station.default_station_id)
        ),
        name=station_data.get("name", config.station.name),
        preview_size=int(station_data.get("preview_size", config.station.preview_size)),
    )

    server_data = _section(toml_data, "server")
    config.server = ServerConfig(
        host=server_data.get("host", config.server.host),
        port=int(server_data.get("port", config.server.port)),
        base_url=server_data.get("base_url", config.server.base_url),
        allowed_origins=server_data.get(
            "allowed_origins", config.server.allowed_origins
        ),
    )

    player_data = _section(toml_data, "player")
    config.player = PlayerConfig(
        mpv_socket_path=player_data.get("mpv_socket_path"),
        volume=int(player_data.get("volume", config.player.volume)),
        poll_interval=float(
            player_data.get("poll_interval", config.player.poll_interval)
        ),
        engine_check_interval=float(
            player_data.get(
                "engine_check_interval", config.player.engine_check_interval
            )
        ),
        resync_tolerance=float(
            player_data.get("resync_tolerance", config.player.resync_tolerance)
        ),
    )
    config.player.validate()

    auth_data = _section(toml_data, "auth")
    config.auth = AuthConfig(
        token_ttl_seconds=int(
            auth_data.get("token_ttl_seconds", config.auth.token_ttl_seconds)
        ),
        max_login_attempts=int(
            auth_data.get("max_login_attempts", config.auth.max_login_attempts)
        ),
        login_window_seconds=int(
            auth_data.get("login_window_seconds", config.auth.login_window_seconds)
        ),
    )

    database_data = _section(toml_data, "database")
    db_path = database_data.get("path")
    config.database = DatabaseConfig(
        path=str(Path(db_path).expanduser()) if db_path else None
    )

    logging_data = _section(toml_data, "logging")
    config.logging = LoggingConfig(
        level=logging_data.get("level", config.logging.level),
        log_file=logging_data.get("log_file"),
        console_output=logging_data.get(
            "console_output", config.logging.console_output
        ),
    )

    return config


def write_default_config(path: Optional[Path] = None) -> Path:
    """Write the default configuration file if it does not exist yet.

    Returns:
        Path of the configuration file
    """
    config_path = path or get_config_dir() / "config.toml"
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
    return config_path
