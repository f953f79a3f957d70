from typing import Optional

from loopcast.core.config import Config, load_config
from loopcast.core.database import configure_database
from loopcast.domain.radio.auth import LoginRateLimiter

_login_limiter: Optional[LoginRateLimiter] = None


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    config = load_config()
    configure_database(config.database)
    return config


def get_login_limiter() -> LoginRateLimiter:
    """FastAPI dependency for the process-wide admin login limiter."""
    global _login_limiter
    if _login_limiter is None:
        auth = load_config().auth
        _login_limiter = LoginRateLimiter(
            max_attempts=auth.max_login_attempts,
            window_seconds=auth.login_window_seconds,
        )
    return _login_limiter
