"""Persisted configuration store.

Reads and writes ``config.json`` under the user's configuration directory.

Write Strategy:
- Whole-file read-modify-write under a single in-process lock
- Serialized to a temporary file in the same directory, fsynced, then
  moved into place with ``os.replace`` so readers never see a partial file
- Keys sorted so identical state produces identical bytes
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from sshbuddy.errors import ConfigReadError, PersistenceError
from sshbuddy.models import Config, Source

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def default_config_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/sshbuddy/config.json`` (or ``~/.config/...``)."""
    base = os.getenv("XDG_CONFIG_HOME", "").strip()
    config_dir = Path(base) if base else Path.home() / ".config"
    return config_dir / "sshbuddy" / CONFIG_FILENAME


class ConfigStore:
    """JSON-backed store for manual hosts, favorites and settings."""

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize store.

        Args:
            path: Config file path (default: XDG config directory)
        """
        self.path = Path(path) if path is not None else default_config_path()
        self._lock = threading.RLock()

    def read_raw(self) -> Config:
        """Return the persisted configuration.

        A missing file yields defaults: manual and local-config enabled,
        remote disabled.

        Raises:
            ConfigReadError: If the file exists but cannot be read or decoded
        """
        if not self.path.exists():
            logger.debug("Config not found at %s, using defaults", self.path)
            return Config()

        try:
            text = self.path.read_text(encoding="utf-8")
            data = json.loads(text) if text.strip() else {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigReadError(self.path, e) from e

        if not isinstance(data, dict):
            raise ConfigReadError(
                self.path, ValueError(f"expected a JSON object, got {type(data).__name__}")
            )

        try:
            config = Config.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigReadError(self.path, e) from e

        logger.debug(
            "Read config from %s (%d manual host(s), %d favorite(s))",
            self.path,
            len(config.hosts),
            len(config.favorites),
        )
        return config

    def write(self, config: Config) -> None:
        """Persist ``config`` atomically.

        Only manual hosts are written. Favorites are written for every alias,
        whichever source currently supplies it.

        Raises:
            PersistenceError: On filesystem, permission or encoding failure
        """
        with self._lock:
            self._write_locked(config)

    def update(self, mutator: Callable[[Config], None]) -> Config:
        """Read, mutate and write the config while holding the writer lock.

        Args:
            mutator: Called with a freshly read config; mutates it in place

        Returns:
            The config as written

        Raises:
            ConfigReadError: If the current file cannot be read
            PersistenceError: If writing fails
        """
        with self._lock:
            config = self.read_raw()
            mutator(config)
            self._write_locked(config)
            return config

    def _write_locked(self, config: Config) -> None:
        dropped = [h.alias for h in config.hosts if h.source is not Source.MANUAL]
        if dropped:
            logger.debug("Not persisting non-manual host(s): %s", ", ".join(dropped))

        try:
            payload = json.dumps(config.to_dict(), indent=2, sort_keys=True) + "\n"
        except (TypeError, ValueError) as e:
            raise PersistenceError(self.path, e) from e

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(self.path, e) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)

        logger.info(
            "Saved config to %s (%d manual host(s), %d favorite(s))",
            self.path,
            sum(1 for h in config.hosts if h.source is Source.MANUAL),
            len(config.favorites),
        )
