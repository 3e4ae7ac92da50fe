"""Shared fixtures for sshbuddy tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from sshbuddy.config import ConfigStore, Settings
from sshbuddy.dependencies import Dependencies
from sshbuddy.errors import SourceUnavailable
from sshbuddy.models import Config, Host, Source
from sshbuddy.services.aggregator import Aggregator


class StaticReader:
    """Local reader returning fixed hosts, or raising ``error``."""

    def __init__(self, hosts: list[Host] | None = None, error: Exception | None = None):
        self.hosts = hosts or []
        self.error = error
        self.calls = 0

    def read(self) -> list[Host]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.hosts)


class FakeRemote:
    """Remote client returning fixed hosts and an optional rotated token."""

    def __init__(
        self,
        hosts: list[Host] | None = None,
        error: Exception | None = None,
        token: str = "",
        expiry: int = 0,
        rotate_to: tuple[str, int] | None = None,
    ):
        self.hosts = hosts or []
        self.error = error
        self.token = token
        self.expiry = expiry
        self.rotate_to = rotate_to
        self.fetch_calls: list[tuple[str | None, str | None]] = []
        self.login_calls: list[tuple[str, str]] = []

    def authenticate(self, username: str, password: str) -> tuple[str, int]:
        self.login_calls.append((username, password))
        self.token, self.expiry = "fresh-token", 4_000_000_000
        return self.token, self.expiry

    def fetch_hosts(self, username: str | None = None, password: str | None = None) -> list[Host]:
        self.fetch_calls.append((username, password))
        if self.error is not None:
            raise self.error
        if self.rotate_to is not None:
            self.token, self.expiry = self.rotate_to
        return list(self.hosts)

    def current_token(self) -> tuple[str, int]:
        return self.token, self.expiry


def host(alias: str, hostname: str = "", source: Source = Source.MANUAL, **kwargs) -> Host:
    """Build a host record with a hostname derived from the alias."""
    return Host(alias=alias, hostname=hostname or f"{alias.lower()}.example.com", source=source, **kwargs)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Path of the persisted config inside tmp_path."""
    return tmp_path / "sshbuddy" / "config.json"


@pytest.fixture
def store(config_path: Path) -> ConfigStore:
    """Config store backed by a temporary file."""
    return ConfigStore(config_path)


@pytest.fixture
def write_config(store: ConfigStore) -> Callable[[Config], Config]:
    """Persist a Config before the test acts on it."""

    def _write(config: Config) -> Config:
        store.write(config)
        return config

    return _write


@pytest.fixture
def make_aggregator(store: ConfigStore) -> Callable[..., Aggregator]:
    """Build an aggregator with fake local and remote sources."""

    def _make(
        local: StaticReader | None = None,
        remote: FakeRemote | None = None,
        remote_timeout: float = 5.0,
    ) -> Aggregator:
        local = local or StaticReader()
        factory_calls: list[tuple[str, str, int, float]] = []

        def factory(base_url: str, token: str, expiry: int, timeout: float) -> FakeRemote:
            factory_calls.append((base_url, token, expiry, timeout))
            if remote is None:
                raise SourceUnavailable(Source.REMOTE, "no fake remote")
            remote.token = remote.token or token
            remote.expiry = remote.expiry or expiry
            return remote

        aggregator = Aggregator(
            store,
            local_reader=local,
            remote_factory=factory,
            remote_timeout=remote_timeout,
        )
        aggregator.factory_calls = factory_calls  # type: ignore[attr-defined]
        return aggregator

    return _make


@pytest.fixture
def make_deps(store: ConfigStore, make_aggregator: Callable[..., Aggregator]) -> Callable[..., Dependencies]:
    """Build a Dependencies container around fake sources."""

    def _make(
        local: StaticReader | None = None,
        remote: FakeRemote | None = None,
        **settings: object,
    ) -> Dependencies:
        return Dependencies(
            settings=Settings(config_path=str(store.path), **settings),  # type: ignore[arg-type]
            store=store,
            aggregator=make_aggregator(local=local, remote=remote),
        )

    return _make
