"""Error types for sshbuddy."""

from pathlib import Path


class SSHBuddyError(Exception):
    """Base class for sshbuddy errors."""


class ConfigReadError(SSHBuddyError):
    """The persisted configuration exists but cannot be read or parsed."""

    def __init__(self, path: Path | str, original_error: Exception):
        """Initialize config read error.

        Args:
            path: Path of the configuration file
            original_error: Underlying I/O or decode error
        """
        self.path = Path(path)
        self.original_error = original_error
        super().__init__(f"Cannot read config {self.path}: {original_error}")


class PersistenceError(SSHBuddyError):
    """Writing the persisted configuration failed."""

    def __init__(self, path: Path | str, original_error: Exception):
        """Initialize persistence error.

        Args:
            path: Path of the configuration file
            original_error: Underlying I/O or encode error
        """
        self.path = Path(path)
        self.original_error = original_error
        super().__init__(f"Cannot write config {self.path}: {original_error}")


class SourceUnavailable(SSHBuddyError):
    """A single host source failed. Loads continue without it."""

    def __init__(self, source: str, reason: str):
        """Initialize source failure.

        Args:
            source: Name of the failing source
            reason: Human-readable failure description
        """
        self.source = str(getattr(source, "value", source))
        self.reason = reason
        super().__init__(f"{self.source} unavailable: {reason}")


class AuthRequired(SSHBuddyError):
    """The remote source needs interactive credentials before fetching."""

    def __init__(self, base_url: str, reason: str = "authentication required"):
        """Initialize authentication error.

        Args:
            base_url: Remote service base URL
            reason: Why credentials are needed
        """
        self.base_url = base_url
        self.reason = reason
        super().__init__(f"{base_url}: {reason}")
