"""Process settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Process-level settings from environment.

    Persisted user preferences (sources, favorites, remote URL) live in
    ``config.json``; these only describe how this process runs.
    """

    # Paths (empty string: use default location)
    config_path: str = field(default="")
    ssh_config_path: str = field(default="")
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=True)

    # Timeouts (seconds)
    remote_timeout: float = field(default=10.0)
    ping_timeout: float = field(default=2.0)
    connect_timeout: float = field(default=10.0)

    # Transport
    transport: str = field(default="stdio")
    http_host: str = field(default="127.0.0.1")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from ``SSHBUDDY_*`` environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            config_path=os.getenv("SSHBUDDY_CONFIG", "").strip(),
            ssh_config_path=os.getenv("SSHBUDDY_SSH_CONFIG", "").strip(),
            known_hosts=os.getenv("SSHBUDDY_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool("SSHBUDDY_STRICT_HOST_KEY_CHECKING", True),
            remote_timeout=cls._get_float("SSHBUDDY_REMOTE_TIMEOUT", 10.0),
            ping_timeout=cls._get_float("SSHBUDDY_PING_TIMEOUT", 2.0),
            connect_timeout=cls._get_float("SSHBUDDY_CONNECT_TIMEOUT", 10.0),
            transport=cls._get_transport(),
            http_host=os.getenv("SSHBUDDY_HTTP_HOST", "127.0.0.1"),
            http_port=cls._get_int("SSHBUDDY_HTTP_PORT", 8000),
            log_level=os.getenv("SSHBUDDY_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("SSHBUDDY_LOG_COLORS", True),
            log_payloads=cls._get_bool("SSHBUDDY_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("SSHBUDDY_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("SSHBUDDY_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get positive float from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("%s must be > 0, got %s. Using default: %s", key, value, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("SSHBUDDY_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "stdio"
