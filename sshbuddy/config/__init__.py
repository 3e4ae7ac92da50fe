"""Configuration module for sshbuddy.

Provides focused classes for different configuration concerns:
- ConfigStore: Persisted manual hosts, favorites and source settings
- SSHConfigParser: Parses ~/.ssh/config files
- Settings: Environment variable configuration
"""

from sshbuddy.config.parser import SSHConfigParser
from sshbuddy.config.settings import Settings
from sshbuddy.config.store import ConfigStore, default_config_path

__all__ = ["ConfigStore", "SSHConfigParser", "Settings", "default_config_path"]
