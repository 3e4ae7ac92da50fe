"""Dependency injection container for sshbuddy.

Settings are passed explicitly into the store and aggregator instead of
living in module-level state.
"""

from dataclasses import dataclass

from sshbuddy.config import ConfigStore, Settings
from sshbuddy.services.aggregator import Aggregator


@dataclass
class Dependencies:
    """Container for sshbuddy dependencies.

    Example:
        deps = Dependencies.create()
        result = await deps.aggregator.load()
    """

    settings: Settings
    store: ConfigStore
    aggregator: Aggregator

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from environment settings.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_settings(Settings.from_env())

    @classmethod
    def from_settings(cls, settings: Settings) -> "Dependencies":
        """Create dependencies with custom settings.

        Args:
            settings: Settings instance

        Returns:
            Dependencies wired from ``settings``
        """
        store = ConfigStore(settings.config_path or None)
        aggregator = Aggregator(
            store,
            ssh_config_path=settings.ssh_config_path or None,
            remote_timeout=settings.remote_timeout,
        )
        return cls(settings=settings, store=store, aggregator=aggregator)
