"""Host aggregation across manual, local-config and remote sources.

Merge Strategy:
- Sources are processed in ``SOURCE_PRIORITY`` order (manual, local-config,
  remote); the first source to supply an alias wins it
- Aliases are grouped case-insensitively; the winner keeps the spelling of
  the source that supplied it
- Every contributing record is kept in ``Host.variants`` and the contributing
  sources, in priority order, in ``Host.available_in``
- Favorites come from the persisted favorites map after merging, never from
  a source record
- Output is sorted favorites first, then by alias, ties in insertion order

Failure Policy:
- ``ConfigReadError`` and ``AuthRequired`` propagate unchanged
- Any other local-config or remote failure (including a remote timeout) is
  logged, reported in ``LoadResult.errors`` and the source is skipped
"""

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from sshbuddy.config.parser import SSHConfigParser
from sshbuddy.config.store import ConfigStore
from sshbuddy.errors import AuthRequired, SourceUnavailable
from sshbuddy.models import (
    SOURCE_PRIORITY,
    Config,
    Host,
    LocalConfigSettings,
    RemoteSession,
    RemoteSettings,
    Source,
    SourceToggles,
)
from sshbuddy.protocols import LocalHostReader, RemoteClientFactory, RemoteHostSource
from sshbuddy.services.remote import RemoteHostClient

logger = logging.getLogger(__name__)

SettingsSection = SourceToggles | RemoteSettings | LocalConfigSettings


def _default_remote_factory(
    base_url: str, token: str, token_expiry: int, timeout: float
) -> RemoteHostSource:
    return RemoteHostClient(
        base_url=base_url,
        token=token,
        token_expiry=token_expiry,
        timeout_seconds=timeout,
    )


def merge_sources(contributions: Iterable[tuple[Source, list[Host]]]) -> list[Host]:
    """Merge per-source host lists by source priority.

    Args:
        contributions: ``(source, hosts)`` pairs in any order

    Returns:
        One winner per case-insensitive alias, in first-seen order
    """
    rank = {source: i for i, source in enumerate(SOURCE_PRIORITY)}
    winners: dict[str, Host] = {}

    for source, hosts in sorted(contributions, key=lambda c: rank[c[0]]):
        seen: set[str] = set()
        for host in hosts:
            key = host.key
            if key in seen:
                logger.debug("Ignoring duplicate alias %s within %s", host.alias, source.value)
                continue
            seen.add(key)

            record = replace(host.record(), source=source)
            winner = winners.get(key)
            if winner is None:
                winners[key] = replace(record, available_in=[source], variants={source: record})
            else:
                winner.available_in.append(source)
                winner.variants[source] = record
                logger.debug(
                    "%s from %s shadowed by %s",
                    host.alias,
                    source.value,
                    winner.source.value,
                )

    return list(winners.values())


def apply_favorites(hosts: Iterable[Host], favorites: Mapping[str, bool]) -> None:
    """Set ``favorite`` on each host from the favorites map (case-insensitive)."""
    marked = {alias.casefold() for alias, flag in favorites.items() if flag is True}
    for host in hosts:
        host.favorite = host.key in marked


def sort_hosts(hosts: Iterable[Host]) -> list[Host]:
    """Sort favorites first, then alias (case-insensitive); stable for ties."""
    return sorted(hosts, key=lambda h: (not h.favorite, h.alias.casefold()))


@dataclass
class LoadResult:
    """Outcome of one aggregation pass.

    ``session`` is set only when the remote source obtained or rotated a
    token that differs from the persisted one. Persisting it is the
    caller's decision (``Aggregator.save_session``).
    """

    hosts: list[Host] = field(default_factory=list)
    errors: list[SourceUnavailable] = field(default_factory=list)
    session: RemoteSession | None = None

    def find(self, alias: str) -> Host | None:
        """Return the merged host for ``alias`` (case-insensitive)."""
        key = alias.casefold()
        for host in self.hosts:
            if host.key == key:
                return host
        return None

    def to_json(self) -> str:
        """Serialize merged hosts deterministically."""
        return json.dumps(
            [h.to_dict(merged=True) for h in self.hosts],
            indent=2,
            sort_keys=True,
        )


class Aggregator:
    """Loads and merges hosts from every enabled source."""

    def __init__(
        self,
        store: ConfigStore,
        local_reader: LocalHostReader | None = None,
        remote_factory: RemoteClientFactory | None = None,
        ssh_config_path: Path | str | None = None,
        remote_timeout: float = 10.0,
    ) -> None:
        """Initialize aggregator.

        Args:
            store: Persisted configuration store
            local_reader: Local config reader (default: SSHConfigParser per load)
            remote_factory: Builds the remote client from persisted settings
            ssh_config_path: SSH config path used when the persisted config
                does not name one
            remote_timeout: Default bound in seconds on one remote fetch
        """
        self.store = store
        self._local_reader = local_reader
        self._remote_factory = remote_factory or _default_remote_factory
        self.ssh_config_path = ssh_config_path
        self.remote_timeout = remote_timeout

    def _local_source(self, config: Config) -> LocalHostReader:
        if self._local_reader is not None:
            return self._local_reader
        return SSHConfigParser(config.local_config.path or self.ssh_config_path)

    def _remote_source(self, config: Config, timeout: float) -> RemoteHostSource:
        return self._remote_factory(
            config.remote.base_url,
            config.remote.token,
            config.remote.token_expiry,
            timeout,
        )

    async def read_config(self) -> Config:
        """Read the persisted configuration off the event loop.

        Raises:
            ConfigReadError: If the file exists but is unreadable or corrupt
        """
        return await asyncio.to_thread(self.store.read_raw)

    async def read_local(self, config: Config) -> list[Host]:
        """Read hosts from the local SSH client configuration."""
        reader = self._local_source(config)
        return await asyncio.to_thread(reader.read)

    async def fetch_remote(
        self,
        config: Config,
        timeout: float,
        username: str | None = None,
        password: str | None = None,
    ) -> tuple[list[Host], RemoteSession]:
        """Fetch remote hosts, bounded by ``timeout`` seconds.

        The client is built with the same ``timeout`` as its total request
        budget, so a worker thread abandoned here stops on its own shortly
        after.

        Returns:
            Hosts and the client's session after the fetch

        Raises:
            AuthRequired: If the remote needs credentials
            SourceUnavailable: On timeout or any other remote failure
        """
        try:
            client = self._remote_source(config, timeout)
        except ValueError as e:
            raise SourceUnavailable(Source.REMOTE, str(e)) from e

        try:
            hosts = await asyncio.wait_for(
                asyncio.to_thread(client.fetch_hosts, username, password),
                timeout=timeout,
            )
        except TimeoutError as e:
            raise SourceUnavailable(
                Source.REMOTE, f"fetch timed out after {timeout:g}s"
            ) from e

        token, expiry = client.current_token()
        return hosts, RemoteSession(token=token, expiry=expiry)

    async def load(
        self,
        timeout: float | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> LoadResult:
        """Load, merge, mark favorites and sort hosts from all enabled sources.

        Args:
            timeout: Bound in seconds on the remote fetch (default: instance
                setting)
            username: Remote credentials, used only if no valid token is cached
            password: Remote password

        Returns:
            Merged hosts with per-source errors and any new remote session

        Raises:
            ConfigReadError: If the persisted config is unreadable
            AuthRequired: If the remote source needs credentials
        """
        config = await self.read_config()
        timeout = self.remote_timeout if timeout is None else timeout

        contributions: list[tuple[Source, list[Host]]] = []
        errors: list[SourceUnavailable] = []
        session: RemoteSession | None = None

        if config.source_enabled(Source.MANUAL):
            contributions.append((Source.MANUAL, list(config.hosts)))
        else:
            logger.debug("Manual source disabled")

        pending: dict[Source, asyncio.Future] = {}
        if config.source_enabled(Source.LOCAL_CONFIG):
            pending[Source.LOCAL_CONFIG] = asyncio.ensure_future(self.read_local(config))
        if config.source_enabled(Source.REMOTE):
            pending[Source.REMOTE] = asyncio.ensure_future(
                self.fetch_remote(config, timeout, username, password)
            )

        # Every fetch finishes before merging starts
        results = await asyncio.gather(*pending.values(), return_exceptions=True)
        outcomes = dict(zip(pending.keys(), results))

        for source in SOURCE_PRIORITY:
            if source not in outcomes:
                continue
            outcome = outcomes[source]

            if isinstance(outcome, AuthRequired):
                logger.info("Remote source requires authentication: %s", outcome.reason)
                raise outcome

            if isinstance(outcome, BaseException):
                if not isinstance(outcome, (Exception, asyncio.CancelledError)):
                    raise outcome
                error = (
                    outcome
                    if isinstance(outcome, SourceUnavailable)
                    else SourceUnavailable(source, str(outcome) or type(outcome).__name__)
                )
                logger.warning("Skipping %s hosts: %s", source.value, error.reason)
                errors.append(error)
                continue

            if source is Source.REMOTE:
                hosts, fetched = outcome
                if fetched != config.remote.session:
                    session = fetched
            else:
                hosts = outcome
            contributions.append((source, hosts))

        merged = merge_sources(contributions)
        apply_favorites(merged, config.favorites)
        ordered = sort_hosts(merged)

        logger.info(
            "Loaded %d host(s) from %s",
            len(ordered),
            ", ".join(f"{s.value}={len(h)}" for s, h in contributions) or "no sources",
        )
        return LoadResult(hosts=ordered, errors=errors, session=session)

    async def save_session(self, session: RemoteSession | None) -> bool:
        """Persist a remote session if it differs from the stored one.

        Returns:
            True if the config file was written

        Raises:
            PersistenceError: If the write fails
        """
        if session is None:
            return False

        current = await self.read_config()
        if current.remote.session == session:
            return False

        def mutate(config: Config) -> None:
            config.remote.token = session.token
            config.remote.token_expiry = session.expiry

        await asyncio.to_thread(self.store.update, mutate)
        logger.info("Cached new remote session token (expiry=%d)", session.expiry)
        return True

    async def save_manual(
        self,
        hosts: list[Host] | None = None,
        favorites: Mapping[str, bool] | None = None,
        settings: Iterable[SettingsSection] = (),
    ) -> Config:
        """Replace manual hosts, favorites and/or settings sections.

        Each argument left as ``None`` (or empty, for ``settings``) keeps the
        persisted value. Replacing ``RemoteSettings`` keeps the cached token
        unless the base URL changes.

        Returns:
            The config as written

        Raises:
            ConfigReadError: If the current file cannot be read
            PersistenceError: If the write fails
        """
        sections = list(settings)

        def mutate(config: Config) -> None:
            if hosts is not None:
                config.hosts = [replace(h.record(), source=Source.MANUAL) for h in hosts]
            if favorites is not None:
                config.favorites = {k: True for k, v in favorites.items() if v is True}
            for section in sections:
                if isinstance(section, SourceToggles):
                    config.source_toggles = replace(section)
                elif isinstance(section, LocalConfigSettings):
                    config.local_config = replace(section)
                elif isinstance(section, RemoteSettings):
                    keep_token = section.base_url.rstrip("/") == config.remote.base_url.rstrip("/")
                    config.remote = replace(
                        section,
                        token=config.remote.token if keep_token else "",
                        token_expiry=config.remote.token_expiry if keep_token else 0,
                    )
                else:
                    raise TypeError(f"Unsupported settings section: {type(section).__name__}")

        return await asyncio.to_thread(self.store.update, mutate)

    async def authenticate(self, username: str, password: str) -> RemoteSession:
        """Log in to the configured remote and cache the token.

        Raises:
            SourceUnavailable: If the remote source is not configured or
                unreachable
            AuthRequired: If the credentials are rejected
            PersistenceError: If the token cannot be saved
        """
        config = await self.read_config()
        if not config.remote.configured:
            raise SourceUnavailable(Source.REMOTE, "remote source is not enabled or has no base URL")

        try:
            client = self._remote_factory(config.remote.base_url, "", 0, self.remote_timeout)
        except ValueError as e:
            raise SourceUnavailable(Source.REMOTE, str(e)) from e

        token, expiry = await asyncio.to_thread(client.authenticate, username, password)
        session = RemoteSession(token=token, expiry=expiry)
        await self.save_session(session)
        return session
