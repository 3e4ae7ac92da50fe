"""Error handling middleware for consistent error logging."""

import logging
import traceback
from collections import defaultdict
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from sshbuddy.errors import AuthRequired, SourceUnavailable
from sshbuddy.middleware.base import SSHBuddyMiddleware


class ErrorHandlingMiddleware(SSHBuddyMiddleware):
    """Logs and counts errors raised by tools and resources, then re-raises.

    Authentication prompts and unavailable sources are expected outcomes and
    log at WARNING; everything else logs at ERROR.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Whether to include full traceback in logs.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self._error_counts: dict[str, int] = defaultdict(int)

    def get_error_stats(self) -> dict[str, int]:
        """Get error counts by exception type name."""
        return dict(self._error_counts)

    def reset_stats(self) -> None:
        """Reset error statistics."""
        self._error_counts.clear()

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log and count errors during request processing.

        Raises:
            Exception: Re-raises the original exception after logging.
        """
        try:
            return await call_next(context)

        except Exception as e:
            error_type = type(e).__name__
            self._error_counts[error_type] += 1

            cause = e.__cause__
            if isinstance(e, (AuthRequired, SourceUnavailable)) or isinstance(
                cause, (AuthRequired, SourceUnavailable)
            ):
                self.logger.warning("%s in %s: %s", error_type, context.method, e)
            elif self.include_traceback:
                self.logger.error(
                    "Error in %s: %s: %s\n%s",
                    context.method,
                    error_type,
                    e,
                    traceback.format_exc(),
                )
            else:
                self.logger.error("Error in %s: %s: %s", context.method, error_type, e)

            raise
