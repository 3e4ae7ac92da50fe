"""Services for sshbuddy."""

from sshbuddy.services.aggregator import (
    Aggregator,
    LoadResult,
    apply_favorites,
    merge_sources,
    sort_hosts,
)
from sshbuddy.services.catalog import (
    ImportSummary,
    add_host,
    configure_remote,
    edit_host,
    export_ssh_config,
    import_hosts,
    remove_host,
    render_ssh_config,
    set_source_enabled,
    toggle_favorite,
    update_host,
)
from sshbuddy.services.connection import ConnectionCheck, check_connection
from sshbuddy.services.remote import RemoteHostClient

__all__ = [
    "Aggregator",
    "ConnectionCheck",
    "ImportSummary",
    "LoadResult",
    "RemoteHostClient",
    "add_host",
    "apply_favorites",
    "check_connection",
    "configure_remote",
    "edit_host",
    "export_ssh_config",
    "import_hosts",
    "merge_sources",
    "remove_host",
    "render_ssh_config",
    "set_source_enabled",
    "sort_hosts",
    "toggle_favorite",
    "update_host",
]
