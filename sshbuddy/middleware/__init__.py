"""sshbuddy middleware components."""

from sshbuddy.middleware.base import SSHBuddyMiddleware
from sshbuddy.middleware.errors import ErrorHandlingMiddleware
from sshbuddy.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "SSHBuddyMiddleware",
]
