"""Utilities for sshbuddy."""

from sshbuddy.utils.console import ColorfulFormatter, MCPRequestFormatter, configure_logging
from sshbuddy.utils.ping import check_host_online, check_hosts_online, format_status
from sshbuddy.utils.ssh_command import build_ssh_command, escape_for_double_quotes

__all__ = [
    "build_ssh_command",
    "check_host_online",
    "check_hosts_online",
    "ColorfulFormatter",
    "configure_logging",
    "escape_for_double_quotes",
    "format_status",
    "MCPRequestFormatter",
]
