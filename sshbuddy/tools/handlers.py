"""Tool handlers backing the sshbuddy MCP tools.

Each handler takes the ``Dependencies`` container explicitly and returns
text for the client. Domain errors become ``ToolError`` so the client sees
a readable message instead of a traceback.
"""

import json
import logging
import shlex
from collections.abc import Iterator
from contextlib import contextmanager

from fastmcp.exceptions import ToolError

from sshbuddy.dependencies import Dependencies
from sshbuddy.errors import AuthRequired, SSHBuddyError
from sshbuddy.models import Host, Source
from sshbuddy.services import (
    LoadResult,
    add_host,
    check_connection,
    configure_remote,
    edit_host,
    export_ssh_config,
    import_hosts,
    remove_host,
    set_source_enabled,
    toggle_favorite,
)
from sshbuddy.services.connection import resolve_known_hosts
from sshbuddy.utils.ping import check_hosts_online, format_status
from sshbuddy.utils.ssh_command import build_ssh_command

logger = logging.getLogger(__name__)


@contextmanager
def tool_errors() -> Iterator[None]:
    """Translate domain errors raised inside the block into ``ToolError``."""
    try:
        yield
    except AuthRequired as e:
        raise ToolError(
            f"Remote source {e.base_url} needs credentials ({e.reason}). "
            "Call authenticate_remote with your username and password."
        ) from e
    except KeyError as e:
        raise ToolError(str(e.args[0]) if e.args else "Not found") from e
    except (SSHBuddyError, ValueError) as e:
        raise ToolError(str(e)) from e


async def load_hosts(deps: Dependencies) -> LoadResult:
    """Load merged hosts and cache any refreshed remote token."""
    with tool_errors():
        result = await deps.aggregator.load()
        await deps.aggregator.save_session(result.session)
    return result


async def find_host(deps: Dependencies, alias: str, source: str | None = None) -> Host:
    """Resolve ``alias`` to its winner, or to the record from ``source``."""
    result = await load_hosts(deps)
    host = result.find(alias)
    if host is None:
        raise ToolError(f"Unknown host: {alias}")
    with tool_errors():
        chosen = host.variant(source or None)
    logger.debug("Resolved %s to %s via %s", alias, chosen.target, chosen.source.value)
    return chosen


def _host_line(host: Host, status: str | None = None) -> str:
    star = "*" if host.favorite else " "
    sources = ",".join(s.value for s in host.available_in)
    line = f"{star} {host.alias:<20} {host.target}:{host.port}  [{sources}]"
    if status:
        line += f"  {status}"
    return line


def _error_lines(result: LoadResult) -> list[str]:
    return [f"! {error}" for error in result.errors]


async def handle_list_hosts(deps: Dependencies, check_status: bool = False) -> str:
    """List merged hosts, favorites first.

    Args:
        deps: Dependencies container
        check_status: Probe each host's SSH port

    Returns:
        One line per host
    """
    result = await load_hosts(deps)
    if not result.hosts:
        return "\n".join(["No hosts found.", *_error_lines(result)])

    statuses: dict[str, float | None] = {}
    if check_status:
        statuses = await check_hosts_online(result.hosts, timeout=deps.settings.ping_timeout)

    lines = []
    for host in result.hosts:
        status = format_status(statuses.get(host.status_key)) if check_status else None
        lines.append(_host_line(host, status))
    lines.extend(_error_lines(result))
    return "\n".join(lines)


async def handle_show_host(deps: Dependencies, alias: str, source: str | None = None) -> str:
    """Show one host as JSON; the merged winner unless ``source`` is given."""
    host = await find_host(deps, alias, source)
    return json.dumps(host.to_dict(merged=source is None), indent=2, sort_keys=True)


async def handle_connect_command(
    deps: Dependencies, alias: str, source: str | None = None
) -> str:
    """Return a shell-quoted ``ssh`` command line for ``alias``."""
    host = await find_host(deps, alias, source)
    return shlex.join(build_ssh_command(host))


async def handle_add_host(
    deps: Dependencies,
    alias: str,
    hostname: str,
    user: str = "",
    port: str = "22",
    identity_file: str = "",
    proxy_jump: str = "",
    default_remote_path: str = "",
) -> str:
    """Add a manual host."""
    host = Host(
        alias=alias.strip(),
        hostname=hostname.strip(),
        user=user.strip(),
        port=port,
        identity_file=identity_file.strip(),
        proxy_jump=proxy_jump.strip(),
        default_remote_path=default_remote_path.strip(),
    )
    with tool_errors():
        added = await add_host(deps.aggregator, host)
    return f"Added {added.alias} ({added.target}:{added.port})"


async def handle_update_host(
    deps: Dependencies,
    alias: str,
    new_alias: str | None = None,
    hostname: str | None = None,
    user: str | None = None,
    port: str | None = None,
    identity_file: str | None = None,
    proxy_jump: str | None = None,
    default_remote_path: str | None = None,
) -> str:
    """Change fields of a manual host. Fields left as None keep their value."""
    changes = {
        "alias": new_alias,
        "hostname": hostname,
        "user": user,
        "port": port,
        "identity_file": identity_file,
        "proxy_jump": proxy_jump,
        "default_remote_path": default_remote_path,
    }
    with tool_errors():
        updated = await edit_host(
            deps.aggregator, alias, **{k: v.strip() for k, v in changes.items() if v is not None}
        )
    return f"Updated {updated.alias} ({updated.target}:{updated.port})"


async def handle_remove_host(deps: Dependencies, alias: str) -> str:
    """Delete a manual host."""
    with tool_errors():
        removed = await remove_host(deps.aggregator, alias)
    return f"Removed {removed.alias}"


async def handle_toggle_favorite(deps: Dependencies, alias: str) -> str:
    """Flip the favorite flag for any alias."""
    with tool_errors():
        favorite = await toggle_favorite(deps.aggregator, alias)
    return f"{alias} {'added to' if favorite else 'removed from'} favorites"


async def handle_set_source_enabled(deps: Dependencies, source: str, enabled: bool) -> str:
    """Enable or disable a host source."""
    with tool_errors():
        await set_source_enabled(deps.aggregator, source, enabled)
    return f"Source {Source(source).value} {'enabled' if enabled else 'disabled'}"


async def handle_configure_remote(deps: Dependencies, base_url: str, enabled: bool = True) -> str:
    """Set the remote service URL and enable or disable it."""
    with tool_errors():
        config = await configure_remote(deps.aggregator, base_url, enabled)
    state = "enabled" if config.remote.enabled else "disabled"
    return f"Remote source {state}: {config.remote.base_url or '(no URL)'}"


async def handle_authenticate_remote(deps: Dependencies, username: str, password: str) -> str:
    """Log in to the remote service and cache the session token."""
    with tool_errors():
        session = await deps.aggregator.authenticate(username, password)
    if session.expiry:
        return f"Authenticated; token valid until {session.expiry}"
    return "Authenticated"


async def handle_import_hosts(deps: Dependencies, source: str, overwrite: bool = False) -> str:
    """Copy hosts from ``local-config`` or ``remote`` into the manual list."""
    with tool_errors():
        summary = await import_hosts(deps.aggregator, source, overwrite=overwrite)
    return str(summary)


async def handle_export_ssh_config(deps: Dependencies) -> str:
    """Render manual hosts as SSH config text."""
    with tool_errors():
        return await export_ssh_config(deps.aggregator)


async def handle_check_hosts(deps: Dependencies) -> str:
    """Probe every merged host's SSH port concurrently."""
    result = await load_hosts(deps)
    if not result.hosts:
        return "No hosts found."

    statuses = await check_hosts_online(result.hosts, timeout=deps.settings.ping_timeout)
    lines = []
    online = 0
    for host in result.hosts:
        latency = statuses.get(host.status_key)
        if latency is not None:
            online += 1
        mark = "✓" if latency is not None else "✗"
        lines.append(f"[{mark}] {host.alias} ({host.hostname}:{host.port}) {format_status(latency)}")
    lines.append(f"{online}/{len(result.hosts)} hosts online")
    lines.extend(_error_lines(result))
    return "\n".join(lines)


async def handle_test_connection(
    deps: Dependencies, alias: str, source: str | None = None
) -> str:
    """Open and close an SSH session to ``alias``."""
    host = await find_host(deps, alias, source)
    try:
        known_hosts = resolve_known_hosts(
            deps.settings.known_hosts, strict=deps.settings.strict_host_key_checking
        )
    except FileNotFoundError as e:
        raise ToolError(str(e)) from e
    check = await check_connection(
        host,
        known_hosts=known_hosts,
        timeout=deps.settings.connect_timeout,
    )
    return str(check)
