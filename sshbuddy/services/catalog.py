"""Host catalog operations: manual host edits, favorites, import and export.

All writes go through ``ConfigStore.update`` so each one is a whole-file
read-modify-write against the current file.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace

from sshbuddy.errors import SourceUnavailable
from sshbuddy.models import Config, Host, Source
from sshbuddy.services.aggregator import Aggregator
from sshbuddy.services.remote import validate_http_url

logger = logging.getLogger(__name__)

EXPORT_HEADER = "# Generated by SSHBuddy"


@dataclass
class ImportSummary:
    """Result of importing hosts into the manual list."""

    source: Source
    imported: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Import from {self.source.value} complete! "
            f"Imported: {len(self.imported)}, "
            f"Updated: {len(self.updated)}, "
            f"Skipped: {len(self.skipped)}"
        )


def _index_of(hosts: list[Host], alias: str) -> int | None:
    key = alias.casefold()
    for i, host in enumerate(hosts):
        if host.key == key:
            return i
    return None


def _validate_host(host: Host) -> None:
    if not host.alias.strip():
        raise ValueError("Host alias is required")
    if any(c.isspace() for c in host.alias):
        raise ValueError(f"Host alias must not contain whitespace: {host.alias!r}")
    if not host.hostname.strip():
        raise ValueError(f"Hostname is required for {host.alias}")
    if not host.port.isdigit() or not 0 < int(host.port) < 65536:
        raise ValueError(f"Invalid port for {host.alias}: {host.port}")


async def add_host(aggregator: Aggregator, host: Host) -> Host:
    """Add a manual host.

    Raises:
        ValueError: If the host is invalid or a manual host already uses
            the alias (case-insensitive)
        PersistenceError: If the write fails
    """
    record = replace(host.record(), source=Source.MANUAL)
    _validate_host(record)

    def mutate(config: Config) -> None:
        if _index_of(config.hosts, record.alias) is not None:
            raise ValueError(f"Host with alias '{record.alias}' already exists")
        config.hosts.append(record)

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Added manual host %s (%s:%s)", record.alias, record.target, record.port)
    return record


def _replace_manual(config: Config, alias: str, record: Host) -> None:
    index = _index_of(config.hosts, alias)
    if index is None:
        raise KeyError(f"No manual host with alias '{alias}'")
    clash = _index_of(config.hosts, record.alias)
    if clash is not None and clash != index:
        raise ValueError(f"Host with alias '{record.alias}' already exists")
    config.hosts[index] = record

    if record.key != alias.casefold() and config.is_favorite(alias):
        _set_favorite(config, alias, False)
        _set_favorite(config, record.alias, True)


async def update_host(aggregator: Aggregator, alias: str, host: Host) -> Host:
    """Replace the manual host ``alias`` with ``host``.

    Renaming carries the favorite flag over to the new alias.

    Raises:
        KeyError: If no manual host has ``alias``
        ValueError: If the new record is invalid or its alias is taken
        PersistenceError: If the write fails
    """
    record = replace(host.record(), source=Source.MANUAL)
    _validate_host(record)

    def mutate(config: Config) -> None:
        _replace_manual(config, alias, record)

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Updated manual host %s", record.alias)
    return record


async def edit_host(aggregator: Aggregator, alias: str, /, **changes: str) -> Host:
    """Change some fields of the manual host ``alias``.

    The changes are applied to the record as stored when the write lock is
    held, so fields not named in ``changes`` keep their current values.

    Args:
        aggregator: Aggregator owning the store
        alias: Current alias of the manual host
        **changes: ``Host`` field names mapped to new values

    Raises:
        KeyError: If no manual host has ``alias``
        ValueError: If the edited record is invalid or its alias is taken
        PersistenceError: If the write fails
    """
    edited: list[Host] = []

    def mutate(config: Config) -> None:
        index = _index_of(config.hosts, alias)
        if index is None:
            raise KeyError(f"No manual host with alias '{alias}'")
        record = replace(config.hosts[index].record(), source=Source.MANUAL, **changes)
        _validate_host(record)
        _replace_manual(config, alias, record)
        edited.append(record)

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Edited manual host %s (%s)", edited[0].alias, ", ".join(sorted(changes)))
    return edited[0]


async def remove_host(aggregator: Aggregator, alias: str) -> Host:
    """Delete the manual host ``alias``.

    The favorite entry is kept; the alias may still come from another source.

    Raises:
        KeyError: If no manual host has ``alias``
        PersistenceError: If the write fails
    """
    removed: list[Host] = []

    def mutate(config: Config) -> None:
        index = _index_of(config.hosts, alias)
        if index is None:
            raise KeyError(f"No manual host with alias '{alias}'")
        removed.append(config.hosts.pop(index))

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Removed manual host %s", removed[0].alias)
    return removed[0]


def _set_favorite(config: Config, alias: str, favorite: bool) -> None:
    key = alias.casefold()
    for existing in [k for k in config.favorites if k.casefold() == key]:
        del config.favorites[existing]
    if favorite:
        config.favorites[alias] = True


async def toggle_favorite(aggregator: Aggregator, alias: str) -> bool:
    """Flip the favorite flag for ``alias``.

    Returns:
        The new favorite state
    """
    state: list[bool] = []

    def mutate(config: Config) -> None:
        new_state = not config.is_favorite(alias)
        _set_favorite(config, alias, new_state)
        state.append(new_state)

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("%s %s", "Favorited" if state[0] else "Unfavorited", alias)
    return state[0]


async def set_source_enabled(aggregator: Aggregator, source: Source | str, enabled: bool) -> Config:
    """Enable or disable one source.

    Enabling local-config or remote also sets that section's own flag.
    """
    source = Source(source)

    def mutate(config: Config) -> None:
        config.source_toggles.set_enabled(source, enabled)
        if enabled and source is Source.LOCAL_CONFIG:
            config.local_config.enabled = True
        elif enabled and source is Source.REMOTE:
            config.remote.enabled = True

    config = await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Source %s %s", source.value, "enabled" if enabled else "disabled")
    return config


async def configure_remote(aggregator: Aggregator, base_url: str, enabled: bool = True) -> Config:
    """Set the remote base URL and enable flag.

    Changing the base URL discards the cached token.

    Raises:
        ValueError: If ``enabled`` and ``base_url`` is not an http(s) URL
    """
    base_url = base_url.strip().rstrip("/")
    if enabled or base_url:
        validate_http_url(base_url)

    def mutate(config: Config) -> None:
        if config.remote.base_url.rstrip("/") != base_url:
            config.remote.token = ""
            config.remote.token_expiry = 0
        config.remote.base_url = base_url
        config.remote.enabled = enabled
        config.source_toggles.remote = enabled

    config = await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("Remote source %s (%s)", "enabled" if enabled else "disabled", base_url or "no URL")
    return config


async def import_hosts(
    aggregator: Aggregator,
    source: Source | str,
    overwrite: bool = False,
    timeout: float | None = None,
) -> ImportSummary:
    """Copy hosts from local-config or remote into the manual list.

    Args:
        aggregator: Aggregator providing the sources
        source: ``local-config`` or ``remote``
        overwrite: Replace manual hosts that share an alias
        timeout: Remote fetch bound in seconds

    Raises:
        ValueError: If ``source`` is manual
        SourceUnavailable: If the source is not configured or fails
        AuthRequired: If the remote needs credentials
        PersistenceError: If the write fails
    """
    source = Source(source)
    if source is Source.MANUAL:
        raise ValueError("Cannot import from the manual source")

    config = await aggregator.read_config()
    session = None
    if source is Source.LOCAL_CONFIG:
        incoming = await aggregator.read_local(config)
    else:
        if not config.remote.configured:
            raise SourceUnavailable(Source.REMOTE, "remote source is not enabled or has no base URL")
        incoming, fetched = await aggregator.fetch_remote(
            config, aggregator.remote_timeout if timeout is None else timeout
        )
        if fetched != config.remote.session:
            session = fetched

    summary = ImportSummary(source=source)
    if not incoming:
        logger.info("No hosts found in %s", source.value)
        return summary

    def mutate(current: Config) -> None:
        seen: set[str] = set()
        for host in incoming:
            if host.key in seen:
                continue
            seen.add(host.key)
            record = replace(host.record(), source=Source.MANUAL)
            index = _index_of(current.hosts, record.alias)
            if index is None:
                current.hosts.append(record)
                summary.imported.append(record.alias)
            elif overwrite:
                current.hosts[index] = record
                summary.updated.append(record.alias)
            else:
                summary.skipped.append(record.alias)

    await asyncio.to_thread(aggregator.store.update, mutate)
    logger.info("%s", summary)
    await aggregator.save_session(session)
    return summary


def render_ssh_config(hosts: list[Host]) -> str:
    """Render hosts as SSH client config text.

    ``Port`` is omitted when it is 22; empty fields are omitted.
    """
    lines = [EXPORT_HEADER, ""]
    for host in hosts:
        lines.append(f"Host {host.alias}")
        lines.append(f"    HostName {host.hostname}")
        if host.user:
            lines.append(f"    User {host.user}")
        if host.port and host.port != "22":
            lines.append(f"    Port {host.port}")
        if host.identity_file:
            lines.append(f"    IdentityFile {host.identity_file}")
        if host.proxy_jump:
            lines.append(f"    ProxyJump {host.proxy_jump}")
        lines.append("")
    return "\n".join(lines)


async def export_ssh_config(aggregator: Aggregator) -> str:
    """Render the persisted manual hosts as SSH config text."""
    config = await aggregator.read_config()
    return render_ssh_config(config.hosts)
