"""Persisted configuration models."""

import time
from dataclasses import dataclass, field
from typing import Any

from sshbuddy.models.host import Host, Source

# Seconds of clock skew tolerated before a cached token counts as expired.
TOKEN_EXPIRY_SKEW = 30


@dataclass
class SourceToggles:
    """Per-source enable flags."""

    manual: bool = True
    local_config: bool = True
    remote: bool = False

    def is_enabled(self, source: Source) -> bool:
        return {
            Source.MANUAL: self.manual,
            Source.LOCAL_CONFIG: self.local_config,
            Source.REMOTE: self.remote,
        }[Source(source)]

    def set_enabled(self, source: Source, enabled: bool) -> None:
        source = Source(source)
        if source is Source.MANUAL:
            self.manual = enabled
        elif source is Source.LOCAL_CONFIG:
            self.local_config = enabled
        else:
            self.remote = enabled

    def to_dict(self) -> dict[str, Any]:
        return {
            "manual": self.manual,
            "localConfig": self.local_config,
            "remote": self.remote,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceToggles":
        return cls(
            manual=bool(data.get("manual", True)),
            local_config=bool(data.get("localConfig", True)),
            remote=bool(data.get("remote", False)),
        )


@dataclass
class RemoteSession:
    """A cached remote session token.

    ``expiry`` is a Unix timestamp; 0 means the server gave no expiry.
    """

    token: str = ""
    expiry: int = 0

    def is_valid(self, now: float | None = None) -> bool:
        if not self.token:
            return False
        if not self.expiry:
            return True
        now = time.time() if now is None else now
        return self.expiry - TOKEN_EXPIRY_SKEW > now


@dataclass
class RemoteSettings:
    """Remote host-listing service settings."""

    enabled: bool = False
    base_url: str = ""
    token: str = ""
    token_expiry: int = 0

    @property
    def configured(self) -> bool:
        return self.enabled and bool(self.base_url.strip())

    @property
    def session(self) -> RemoteSession:
        return RemoteSession(token=self.token, expiry=self.token_expiry)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "baseUrl": self.base_url,
            "token": self.token,
            "tokenExpiry": self.token_expiry,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteSettings":
        try:
            expiry = int(data.get("tokenExpiry") or 0)
        except (TypeError, ValueError):
            expiry = 0
        return cls(
            enabled=bool(data.get("enabled", False)),
            base_url=str(data.get("baseUrl") or ""),
            token=str(data.get("token") or ""),
            token_expiry=expiry,
        )


@dataclass
class LocalConfigSettings:
    """Local SSH client configuration settings.

    An empty ``path`` means the reader's default (``~/.ssh/config``).
    """

    enabled: bool = True
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocalConfigSettings":
        return cls(
            enabled=bool(data.get("enabled", True)),
            path=str(data.get("path") or ""),
        )


@dataclass
class Config:
    """Persisted manual configuration.

    ``hosts`` holds manually entered records only. ``favorites`` is keyed by
    alias and is independent of which source currently supplies the alias.
    """

    hosts: list[Host] = field(default_factory=list)
    favorites: dict[str, bool] = field(default_factory=dict)
    source_toggles: SourceToggles = field(default_factory=SourceToggles)
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    local_config: LocalConfigSettings = field(default_factory=LocalConfigSettings)
    theme: str = "default"

    def source_enabled(self, source: Source) -> bool:
        """Whether ``source`` contributes to a load."""
        source = Source(source)
        if not self.source_toggles.is_enabled(source):
            return False
        if source is Source.LOCAL_CONFIG:
            return self.local_config.enabled
        if source is Source.REMOTE:
            return self.remote.configured
        return True

    def is_favorite(self, alias: str) -> bool:
        key = alias.casefold()
        return any(v is True and k.casefold() == key for k, v in self.favorites.items())

    def to_dict(self) -> dict[str, Any]:
        return {
            "hosts": [h.record().to_dict() for h in self.hosts if h.source is Source.MANUAL],
            "favorites": {k: True for k, v in self.favorites.items() if v is True},
            "sourceToggles": self.source_toggles.to_dict(),
            "remote": self.remote.to_dict(),
            "localConfig": self.local_config.to_dict(),
            "theme": self.theme,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        favorites = data.get("favorites") or {}
        return cls(
            hosts=[
                Host.from_dict(h)
                for h in data.get("hosts") or []
                if isinstance(h, dict) and h.get("alias")
            ],
            favorites={str(k): True for k, v in favorites.items() if v is True},
            source_toggles=SourceToggles.from_dict(data.get("sourceToggles") or {}),
            remote=RemoteSettings.from_dict(data.get("remote") or {}),
            local_config=LocalConfigSettings.from_dict(data.get("localConfig") or {}),
            theme=str(data.get("theme") or "default"),
        )
