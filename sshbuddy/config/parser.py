"""SSH config file parser.

Reads ~/.ssh/config and turns ``Host`` blocks into host records.
"""

import logging
import os
import re
from pathlib import Path

from sshbuddy.errors import SourceUnavailable
from sshbuddy.models import DEFAULT_PORT, Host, Source

logger = logging.getLogger(__name__)

_HOST_RE = re.compile(r"^Host\s+(.+)$", re.IGNORECASE)
_KV_RE = re.compile(r"^(\w+)(?:\s*=\s*|\s+)(.+)$")
_WILDCARD_CHARS = ("*", "?", "!")

# Directives copied onto host records (lowercased SSH keyword)
_KNOWN_KEYS = ("hostname", "user", "port", "identityfile", "proxyjump")


def _is_pattern(name: str) -> bool:
    return any(c in name for c in _WILDCARD_CHARS)


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


class SSHConfigParser:
    """Parser for SSH client config files.

    Settings from wildcard-only blocks (``Host *``) act as defaults for the
    concrete hosts. The first value of a directive wins, as in ``ssh``.
    """

    def __init__(self, config_path: Path | str | None = None):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
        """
        if not config_path:
            config_path = Path.home() / ".ssh" / "config"

        self.config_path = Path(config_path)

    def read(self) -> list[Host]:
        """Parse SSH config and return host records in file order.

        Returns:
            Hosts found in the file; empty if the file does not exist

        Raises:
            SourceUnavailable: If the file exists but cannot be read
        """
        if not self.config_path.exists():
            logger.debug("SSH config not found: %s", self.config_path)
            return []

        try:
            content = self.config_path.read_text(encoding="utf-8", errors="replace")
            logger.debug("Reading SSH config from %s", self.config_path)
        except OSError as e:
            raise SourceUnavailable(Source.LOCAL_CONFIG, f"cannot read {self.config_path}: {e}") from e

        hosts = self.parse(content)
        logger.info("Parsed %d host(s) from %s", len(hosts), self.config_path)
        return hosts

    def parse(self, content: str) -> list[Host]:
        """Parse SSH config text.

        Args:
            content: Raw SSH config contents

        Returns:
            Host records, one per concrete alias
        """
        blocks: list[tuple[list[str], dict[str, str]]] = []
        defaults: dict[str, str] = {}
        current: dict[str, str] | None = None

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_RE.match(line)
            if host_match:
                names = [_unquote(n) for n in host_match.group(1).split()]
                concrete = [n for n in names if not _is_pattern(n)]
                if concrete:
                    current = {}
                    blocks.append((concrete, current))
                elif "*" in names:
                    current = defaults
                else:
                    # Pattern-only block that is not Host *; ignored
                    current = None
                continue

            if re.match(r"^Match\s", line, re.IGNORECASE):
                current = None
                continue

            kv_match = _KV_RE.match(line)
            if kv_match is None or current is None:
                continue

            key = kv_match.group(1).lower()
            if key not in _KNOWN_KEYS or key in current:
                continue
            value = _unquote(kv_match.group(2))
            if key == "identityfile":
                value = os.path.expanduser(value)
            current[key] = value

        hosts: list[Host] = []
        for names, data in blocks:
            merged = {**defaults, **data}
            for name in names:
                hosts.append(
                    Host(
                        alias=name,
                        hostname=merged.get("hostname", name),
                        user=merged.get("user", ""),
                        port=merged.get("port", DEFAULT_PORT),
                        identity_file=merged.get("identityfile", ""),
                        proxy_jump=merged.get("proxyjump", ""),
                        source=Source.LOCAL_CONFIG,
                    )
                )
        return hosts
