"""SSH login checks for hosts."""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import asyncssh

from sshbuddy.models import Host

logger = logging.getLogger(__name__)


@dataclass
class ConnectionCheck:
    """Outcome of an SSH login attempt."""

    alias: str
    success: bool
    message: str

    def __str__(self) -> str:
        mark = "✓" if self.success else "✗"
        return f"[{mark}] {self.alias}: {self.message}"


def resolve_known_hosts(value: str | None, strict: bool = True) -> str | None:
    """Resolve the known_hosts setting.

    Args:
        value: ``None`` for the default file, ``"none"`` to disable
            verification, or a path
        strict: Fail when the known_hosts file is missing instead of
            disabling verification

    Returns:
        Path to known_hosts, or None to disable verification

    Raises:
        FileNotFoundError: If strict and the known_hosts file is missing
    """
    if value and value.lower() == "none":
        logger.warning("SSH host key verification disabled for connection tests")
        return None

    path = Path(os.path.expanduser(value)) if value else Path.home() / ".ssh" / "known_hosts"
    if path.exists():
        return str(path)

    if strict:
        raise FileNotFoundError(
            f"known_hosts not found at {path}. Add host keys with "
            f"'ssh-keyscan <hostname> >> {path}', point SSHBUDDY_KNOWN_HOSTS at "
            "another file, or set SSHBUDDY_STRICT_HOST_KEY_CHECKING=false"
        )
    logger.warning("known_hosts not found at %s, host key verification disabled", path)
    return None


async def check_connection(
    host: Host,
    known_hosts: str | None = None,
    timeout: float = 10.0,
) -> ConnectionCheck:
    """Open an SSH session to ``host``, run ``true`` and close it.

    Hosts reached through ``ProxyJump`` are tunnelled through the jump host
    by asyncssh.

    Args:
        host: Host to connect to
        known_hosts: Path to known_hosts, or None to skip verification
        timeout: Seconds allowed for connect and command

    Returns:
        Result describing success or the failure reason
    """
    try:
        port = int(host.port)
    except ValueError:
        return ConnectionCheck(host.alias, False, f"invalid port {host.port!r}")

    client_keys = [host.identity_file] if host.identity_file else None
    options: dict[str, object] = {
        "port": port,
        "known_hosts": known_hosts,
        "client_keys": client_keys,
    }
    if host.user:
        options["username"] = host.user
    if host.proxy_jump:
        options["tunnel"] = host.proxy_jump

    logger.info("Testing SSH connection to %s (%s:%s)", host.alias, host.target, host.port)
    try:
        async with asyncio.timeout(timeout):
            async with asyncssh.connect(host.hostname, **options) as conn:
                result = await conn.run("true", check=False)
    except TimeoutError:
        return ConnectionCheck(host.alias, False, f"timed out after {timeout:g}s")
    except asyncssh.HostKeyNotVerifiable as e:
        return ConnectionCheck(host.alias, False, f"host key not verifiable: {e}")
    except asyncssh.PermissionDenied as e:
        return ConnectionCheck(host.alias, False, f"permission denied: {e}")
    except (asyncssh.Error, OSError) as e:
        return ConnectionCheck(host.alias, False, f"{type(e).__name__}: {e}")

    if result.exit_status not in (0, None):
        return ConnectionCheck(
            host.alias, False, f"connected, but remote command exited {result.exit_status}"
        )
    return ConnectionCheck(host.alias, True, f"connected to {host.target}:{host.port}")
