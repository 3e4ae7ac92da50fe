"""Colorful console logging formatter."""

import logging
import re
import sys
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "white": "\033[37m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "sshbuddy.server": COLORS["bright_cyan"],
    "sshbuddy.services.aggregator": COLORS["bright_magenta"],
    "sshbuddy.services.remote": COLORS["bright_blue"],
    "sshbuddy.config": COLORS["green"],
    "sshbuddy.middleware": COLORS["yellow"],
    "sshbuddy.tools": COLORS["cyan"],
    "default": COLORS["white"],
}

_SSH_TARGET_RE = re.compile(r"([\w.\-]+@[\w.\-]+(?::\d+)?)")
_DURATION_RE = re.compile(r"(\d+\.?\d*ms)")
_URL_RE = re.compile(r"(https?://[^\s]+)")


class ColorfulFormatter(logging.Formatter):
    """Log formatter with colored level, component and highlighted targets."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d} {dt.strftime('%m/%d')}"

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name.removeprefix("sshbuddy.")
        return self._colorize(f"{name:<20}", self._get_component_color(record.name))

    def _highlight_message(self, message: str) -> str:
        if not self.use_colors:
            return message
        message = _URL_RE.sub(f"{COLORS['bright_blue']}\\1{COLORS['reset']}", message)
        message = _DURATION_RE.sub(f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message)
        if "@" in message:
            message = _SSH_TARGET_RE.sub(
                f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
            )
        return message

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._colorize(
            f"{record.levelname:<8}", LEVEL_COLORS.get(record.levelname, COLORS["white"])
        )
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class MCPRequestFormatter(ColorfulFormatter):
    """Extended formatter that marks request and lifecycle events."""

    def format(self, record: logging.LogRecord) -> str:
        """Format with a leading marker for notable events."""
        base = super().format(record)

        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        if "starting" in message or "ready" in message:
            return f"{COLORS['bright_green']}>>>{COLORS['reset']} {base}"
        if "shutting down" in message:
            return f"{COLORS['bright_red']}<<<{COLORS['reset']} {base}"
        if "error" in message or "failed" in message or "unavailable" in message:
            return f"{COLORS['bright_red']}!!{COLORS['reset']}  {base}"
        if "skipping" in message or "slow" in message:
            return f"{COLORS['bright_yellow']}!{COLORS['reset']}   {base}"
        if "saved" in message or "cached" in message:
            return f"{COLORS['bright_green']}OK{COLORS['reset']}  {base}"
        return f"    {base}"


def configure_logging(level: str = "INFO", use_colors: bool = True) -> None:
    """Attach a single stderr handler to the ``sshbuddy`` logger.

    Colors are disabled when stderr is not a TTY. Safe to call repeatedly.
    """
    if not sys.stderr.isatty():
        use_colors = False

    logger = logging.getLogger("sshbuddy")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        logger.addHandler(handler)
        logger.propagate = False

    for noisy_logger in [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "asyncssh",
        "httpx",
        "httpcore",
        "fastmcp",
        "starlette",
        "anyio",
    ]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)
