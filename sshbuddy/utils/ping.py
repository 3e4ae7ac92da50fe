"""Host reachability checking utilities."""

import asyncio
import logging
import time
from collections.abc import Iterable

from sshbuddy.models import Host

logger = logging.getLogger(__name__)


async def check_host_online(hostname: str, port: int, timeout: float = 2.0) -> float | None:
    """Check if a host accepts TCP connections.

    Args:
        hostname: Host to check.
        port: Port to connect to (usually SSH port).
        timeout: Connection timeout in seconds.

    Returns:
        Connect time in milliseconds, or None if unreachable.
    """
    start = time.perf_counter()
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
        elapsed = (time.perf_counter() - start) * 1000
        writer.close()
        await writer.wait_closed()
        return elapsed
    except (TimeoutError, OSError, ValueError, OverflowError) as e:
        logger.debug("Probe of %s:%s failed: %s", hostname, port, e)
        return None


async def check_hosts_online(
    hosts: Iterable[Host],
    timeout: float = 2.0,
) -> dict[str, float | None]:
    """Check multiple hosts concurrently, one probe per distinct endpoint.

    Host records are only read, never modified.

    Args:
        hosts: Hosts to probe.
        timeout: Connection timeout per host.

    Returns:
        Dict of {host.status_key: connect time in ms or None}.
    """
    endpoints: dict[str, tuple[str, int]] = {}
    for host in hosts:
        if not host.hostname or host.status_key in endpoints:
            continue
        try:
            port = int(host.port)
        except ValueError:
            continue
        if not 1 <= port <= 65535:
            continue
        endpoints[host.status_key] = (host.hostname, port)

    if not endpoints:
        return {}

    keys = list(endpoints.keys())
    coros = [
        check_host_online(hostname, port, timeout)
        for hostname, port in endpoints.values()
    ]

    results = await asyncio.gather(*coros)
    return dict(zip(keys, results))


def format_status(latency_ms: float | None) -> str:
    """Render a probe result for display."""
    if latency_ms is None:
        return "offline"
    return f"online {latency_ms:.0f}ms"
