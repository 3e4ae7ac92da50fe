"""Hosts resources: the merged host list and single-host detail."""

import json

from fastmcp.exceptions import ResourceError

from sshbuddy.dependencies import Dependencies
from sshbuddy.tools.handlers import load_hosts
from sshbuddy.utils.ping import check_hosts_online, format_status
from sshbuddy.utils.ssh_command import build_ssh_command


async def list_hosts_resource(deps: Dependencies) -> str:
    """List merged SSH hosts with reachability status and sources.

    Returns:
        Formatted host list, favorites first
    """
    result = await load_hosts(deps)

    if not result.hosts:
        lines = ["No SSH hosts configured."]
        lines.extend(f"Warning: {error}" for error in result.errors)
        return "\n".join(lines)

    statuses = await check_hosts_online(result.hosts, timeout=deps.settings.ping_timeout)

    lines = ["Available SSH Hosts", "=" * 40, ""]

    for host in result.hosts:
        latency = statuses.get(host.status_key)
        status_icon = "✓" if latency is not None else "✗"
        favorite = " ★" if host.favorite else ""

        lines.append(f"[{status_icon}] {host.alias}{favorite} ({format_status(latency)})")
        lines.append(f"    SSH:      {host.target}:{host.port}")
        lines.append(f"    Sources:  {', '.join(s.value for s in host.available_in)}")
        if host.default_remote_path:
            lines.append(f"    Path:     {host.default_remote_path}")
        lines.append(f"    Detail:   hosts://{host.alias}")
        lines.append("")

    for error in result.errors:
        lines.append(f"Warning: {error}")

    return "\n".join(lines).rstrip() + "\n"


async def host_detail_resource(deps: Dependencies, alias: str) -> str:
    """Describe one merged host with every per-source variant as JSON.

    Raises:
        ResourceError: If no source supplies ``alias``
    """
    result = await load_hosts(deps)
    host = result.find(alias)
    if host is None:
        raise ResourceError(f"Unknown host: {alias}")

    data = host.to_dict(merged=True)
    data["command"] = build_ssh_command(host)
    return json.dumps(data, indent=2, sort_keys=True)
