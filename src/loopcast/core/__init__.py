"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database operations (SQLite / PostgreSQL)
- Logging (Loguru) and console output (Rich)
"""

from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    write_default_config,
)
from .database import configure_database, get_database_path, init_database
from .db_adapter import get_station_db_connection, init_storage, is_postgres
from .console import format_time, get_console, safe_print
from .output import log, setup_from_config, setup_loguru

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "write_default_config",
    # Database
    "configure_database",
    "get_database_path",
    "init_database",
    "get_station_db_connection",
    "init_storage",
    "is_postgres",
    # Output
    "format_time",
    "get_console",
    "safe_print",
    "log",
    "setup_from_config",
    "setup_loguru",
]
