"""Host data models."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Source(str, Enum):
    """Origin of a host record."""

    MANUAL = "manual"
    LOCAL_CONFIG = "local-config"
    REMOTE = "remote"


# Highest priority first. The first source to supply an alias wins it.
SOURCE_PRIORITY: tuple[Source, ...] = (
    Source.MANUAL,
    Source.LOCAL_CONFIG,
    Source.REMOTE,
)

DEFAULT_PORT = "22"


@dataclass
class Host:
    """One connectable SSH target."""

    alias: str
    hostname: str = ""
    user: str = ""
    port: str = DEFAULT_PORT
    identity_file: str = ""
    proxy_jump: str = ""
    default_remote_path: str = ""
    source: Source = Source.MANUAL
    available_in: list[Source] = field(default_factory=list)
    variants: dict[Source, "Host"] = field(default_factory=dict)
    favorite: bool = False

    def __post_init__(self) -> None:
        self.port = str(self.port or "").strip() or DEFAULT_PORT
        self.source = Source(self.source)

    @property
    def key(self) -> str:
        """Case-insensitive merge key."""
        return self.alias.casefold()

    @property
    def status_key(self) -> str:
        """Key used by reachability status maps."""
        return f"{self.hostname}:{self.port}:{self.user}".lower()

    @property
    def target(self) -> str:
        """Return ``user@hostname`` (or just hostname when no user is set)."""
        return f"{self.user}@{self.hostname}" if self.user else self.hostname

    def record(self) -> "Host":
        """Return a copy of the connection record without merge bookkeeping."""
        return replace(self, available_in=[], variants={}, favorite=False)

    def variant(self, source: Source | str | None = None) -> "Host":
        """Return the record contributed by ``source``, or the winner itself.

        Raises:
            KeyError: If ``source`` did not supply this alias.
        """
        if source is None:
            return self
        source = Source(source)
        if source not in self.variants:
            raise KeyError(f"{self.alias} is not available in {source.value}")
        return self.variants[source]

    def to_dict(self, merged: bool = False) -> dict[str, Any]:
        """Serialize to the persisted JSON shape.

        Args:
            merged: Include availability, variants and favorite flag.
        """
        data: dict[str, Any] = {
            "alias": self.alias,
            "hostname": self.hostname,
            "user": self.user,
            "port": self.port,
            "source": self.source.value,
        }
        if self.identity_file:
            data["identityFile"] = self.identity_file
        if self.proxy_jump:
            data["proxyJump"] = self.proxy_jump
        if self.default_remote_path:
            data["defaultRemotePath"] = self.default_remote_path
        if merged:
            data["availableIn"] = [s.value for s in self.available_in]
            data["variants"] = {
                s.value: v.to_dict()
                for s, v in sorted(self.variants.items(), key=lambda kv: kv[0].value)
            }
            data["favorite"] = self.favorite
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Host":
        """Build a host from its JSON representation.

        Unknown sources fall back to manual.
        """
        try:
            source = Source(data.get("source") or Source.MANUAL)
        except ValueError:
            source = Source.MANUAL
        return cls(
            alias=str(data.get("alias", "")),
            hostname=str(data.get("hostname", "")),
            user=str(data.get("user", "")),
            port=str(data.get("port") or DEFAULT_PORT),
            identity_file=str(data.get("identityFile", "")),
            proxy_jump=str(data.get("proxyJump", "")),
            default_remote_path=str(data.get("defaultRemotePath", "")),
            source=source,
        )
