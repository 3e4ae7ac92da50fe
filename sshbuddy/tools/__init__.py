"""MCP tools for sshbuddy."""

from sshbuddy.tools.handlers import (
    find_host,
    handle_add_host,
    handle_authenticate_remote,
    handle_check_hosts,
    handle_configure_remote,
    handle_connect_command,
    handle_export_ssh_config,
    handle_import_hosts,
    handle_list_hosts,
    handle_remove_host,
    handle_set_source_enabled,
    handle_show_host,
    handle_test_connection,
    handle_toggle_favorite,
    handle_update_host,
    load_hosts,
    tool_errors,
)

__all__ = [
    "find_host",
    "handle_add_host",
    "handle_authenticate_remote",
    "handle_check_hosts",
    "handle_configure_remote",
    "handle_connect_command",
    "handle_export_ssh_config",
    "handle_import_hosts",
    "handle_list_hosts",
    "handle_remove_host",
    "handle_set_source_enabled",
    "handle_show_host",
    "handle_test_connection",
    "handle_toggle_favorite",
    "handle_update_host",
    "load_hosts",
    "tool_errors",
]
