"""Protocol interfaces for dependency inversion.

Defines the contracts the aggregator depends on, so tests (and alternative
sources) can supply any object with the right shape.

Usage Example:

    from sshbuddy.protocols import LocalHostReader

    class StaticReader:
        def read(self) -> list[Host]:
            return [Host(alias="db", hostname="10.0.0.5")]

    aggregator = Aggregator(store, local_reader=StaticReader())
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from sshbuddy.models import Host


@runtime_checkable
class LocalHostReader(Protocol):
    """Protocol for the local SSH client configuration source."""

    def read(self) -> list[Host]:
        """Return hosts parsed from local configuration.

        Raises:
            SourceUnavailable: If the configuration cannot be read
        """
        ...


@runtime_checkable
class RemoteHostSource(Protocol):
    """Protocol for the remote host-listing source.

    Implementations cache a session token that ``fetch_hosts`` may obtain or
    rotate; ``current_token`` reads it back.
    """

    def authenticate(self, username: str, password: str) -> tuple[str, int]:
        """Log in and return ``(token, expiry)``.

        Raises:
            AuthRequired: If the credentials are rejected
        """
        ...

    def fetch_hosts(
        self,
        username: str | None = None,
        password: str | None = None,
    ) -> list[Host]:
        """Return remote hosts.

        Raises:
            AuthRequired: If interactive credentials are needed
            SourceUnavailable: On any other failure
        """
        ...

    def current_token(self) -> tuple[str, int]:
        """Return the cached ``(token, expiry)``."""
        ...


# Builds a remote client from (base_url, token, token_expiry, timeout)
RemoteClientFactory = Callable[[str, str, int, float], RemoteHostSource]
