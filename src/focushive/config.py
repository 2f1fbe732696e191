"""Centralized configuration management for FocusHive.

Reads from environment variables with sensible defaults.
The server, the CLI and the sweeper all use this module for configuration.

Environment variables follow the pattern FOCUSHIVE_*.

Example:
    >>> from focushive.config import get_config
    >>> config = get_config()
    >>> print(config.server_port)
    5000
"""

import logging
import os
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    """Parse boolean from environment variable string."""
    return value.lower() in ("true", "1", "yes", "on")


def _getenv_int(key: str, default: int) -> int:
    """Get integer from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"Invalid integer value for {key}={value}, using default {default}")
        return default


def _getenv_float(key: str, default: float) -> float:
    """Get float from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        log.warning(f"Invalid float value for {key}={value}, using default {default}")
        return default


@dataclass
class FocusHiveConfig:
    """FocusHive configuration loaded from environment variables.

    All fields have defaults that work for local development.
    Production deployments should override via environment variables.

    Attributes
    ----------
    redis_url : str | None
        Redis connection URL. None means in-memory mode (single process only,
        relay transport disabled).
    server_host : str
        Server bind host address.
    server_port : int
        Server bind port number.
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    secret_key : str
        Secret used to sign session tokens. MUST change in production!
    jwt_algorithm : str
        Signing algorithm for session tokens.
    token_expiry_seconds : int
        Lifetime of session tokens issued by /api/login.
    relay_enabled : bool
        Publish broadcasts to the Redis pub/sub relay (requires redis_url).
    relay_secret : str
        Secret used to sign subscribe-only relay tokens.
    relay_token_ttl_seconds : int
        Lifetime of relay tokens.
    sweep_interval_seconds : float
        Interval of the periodic empty-room sweep.
    sweep_grace_seconds : float
        Minimum membership age before a member without a live session is
        pruned by the sweep.
    dedup_window_seconds : float
        Window in which identical broadcasts are suppressed.
    broadcast_timeout_seconds : float
        Maximum time to wait for a single transport publish.
    cors_allowed_origins : str
        CORS origins for Socket.IO ("*" or comma separated list).
    """

    # Core server configuration
    redis_url: str | None = field(
        default_factory=lambda: os.getenv("FOCUSHIVE_REDIS_URL")
    )
    server_host: str = field(
        default_factory=lambda: os.getenv("FOCUSHIVE_SERVER_HOST", "localhost")
    )
    server_port: int = field(
        default_factory=lambda: _getenv_int("FOCUSHIVE_SERVER_PORT", 5000)
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("FOCUSHIVE_LOG_LEVEL", "WARNING")
    )

    # Security
    secret_key: str = field(
        default_factory=lambda: os.getenv(
            "FOCUSHIVE_SECRET_KEY", "dev-secret-key-change-in-production"
        )
    )
    jwt_algorithm: str = field(
        default_factory=lambda: os.getenv("FOCUSHIVE_JWT_ALGORITHM", "HS256")
    )
    token_expiry_seconds: int = field(
        default_factory=lambda: _getenv_int(
            "FOCUSHIVE_TOKEN_EXPIRY_SECONDS", 7 * 24 * 60 * 60
        )
    )

    # Relay transport
    relay_enabled: bool = field(
        default_factory=lambda: _parse_bool(
            os.getenv("FOCUSHIVE_RELAY_ENABLED", "true")
        )
    )
    relay_secret: str = field(
        default_factory=lambda: os.getenv(
            "FOCUSHIVE_RELAY_SECRET", "dev-relay-secret-change-in-production"
        )
    )
    relay_token_ttl_seconds: int = field(
        default_factory=lambda: _getenv_int("FOCUSHIVE_RELAY_TOKEN_TTL_SECONDS", 3600)
    )

    # Room lifecycle
    sweep_interval_seconds: float = field(
        default_factory=lambda: _getenv_float("FOCUSHIVE_SWEEP_INTERVAL_SECONDS", 60.0)
    )
    sweep_grace_seconds: float = field(
        default_factory=lambda: _getenv_float("FOCUSHIVE_SWEEP_GRACE_SECONDS", 120.0)
    )
    dedup_window_seconds: float = field(
        default_factory=lambda: _getenv_float("FOCUSHIVE_DEDUP_WINDOW_SECONDS", 3.0)
    )
    broadcast_timeout_seconds: float = field(
        default_factory=lambda: _getenv_float(
            "FOCUSHIVE_BROADCAST_TIMEOUT_SECONDS", 5.0
        )
    )

    cors_allowed_origins: str = field(
        default_factory=lambda: os.getenv("FOCUSHIVE_CORS_ALLOWED_ORIGINS", "*")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()
        self._log_config()

    def _validate(self):
        """Validate configuration values.

        Raises
        ------
        ValueError
            If configuration is invalid.
        """
        if not 1 <= self.server_port <= 65535:
            raise ValueError(
                f"Invalid port number: {self.server_port}. Must be between 1 and 65535"
            )

        if self.sweep_interval_seconds <= 0:
            raise ValueError(
                f"Invalid sweep interval: {self.sweep_interval_seconds}s. Must be positive"
            )

        if self.dedup_window_seconds < 0:
            raise ValueError(
                f"Invalid dedup window: {self.dedup_window_seconds}s. Must not be negative"
            )

        if self.broadcast_timeout_seconds <= 0:
            raise ValueError(
                f"Invalid broadcast timeout: {self.broadcast_timeout_seconds}s. "
                "Must be positive"
            )

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            log.warning(
                f"Invalid log level '{self.log_level}', using WARNING. "
                f"Valid levels: {', '.join(valid_levels)}"
            )
            self.log_level = "WARNING"

    @property
    def relay_active(self) -> bool:
        """The relay needs a real Redis server to publish to."""
        return self.relay_enabled and self.redis_url is not None

    def _log_config(self):
        """Log configuration for debugging (excludes sensitive data)."""
        log.info("=" * 80)
        log.info("FocusHive Configuration:")
        log.info(f"  Redis URL: {self.redis_url or 'None (in-memory mode)'}")
        log.info(f"  Server: {self.server_host}:{self.server_port}")
        log.info(f"  Log Level: {self.log_level}")
        log.info(f"  Relay: {'Enabled' if self.relay_active else 'Disabled'}")
        log.info(f"  Sweep Interval: {self.sweep_interval_seconds}s")
        log.info(f"  Dedup Window: {self.dedup_window_seconds}s")
        log.info("=" * 80)


# Global config instance (singleton pattern)
_config: FocusHiveConfig | None = None


def get_config() -> FocusHiveConfig:
    """Get or create the global configuration instance.

    Returns
    -------
    FocusHiveConfig
        Global configuration instance loaded from environment variables.
    """
    global _config
    if _config is None:
        _config = FocusHiveConfig()
    return _config


def reload_config() -> FocusHiveConfig:
    """Reload configuration from environment.

    Useful for testing or when environment variables change at runtime.

    Returns
    -------
    FocusHiveConfig
        Newly created configuration instance.
    """
    global _config
    _config = FocusHiveConfig()
    return _config
