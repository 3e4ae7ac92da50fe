"""Data models for sshbuddy."""

from sshbuddy.models.config import (
    Config,
    LocalConfigSettings,
    RemoteSession,
    RemoteSettings,
    SourceToggles,
)
from sshbuddy.models.host import DEFAULT_PORT, SOURCE_PRIORITY, Host, Source

__all__ = [
    "Config",
    "DEFAULT_PORT",
    "Host",
    "LocalConfigSettings",
    "RemoteSession",
    "RemoteSettings",
    "SOURCE_PRIORITY",
    "Source",
    "SourceToggles",
]
