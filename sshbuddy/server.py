"""sshbuddy FastMCP server.

This is a thin wrapper that wires the MCP server to tools and resources.
All business logic lives in the tools/, resources/ and services/ modules.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from sshbuddy.config import Settings
from sshbuddy.dependencies import Dependencies
from sshbuddy.errors import SSHBuddyError
from sshbuddy.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from sshbuddy.resources import host_detail_resource, list_hosts_resource
from sshbuddy.tools import (
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
)
from sshbuddy.utils.console import configure_logging

SourceName = Literal["manual", "local-config", "remote"]
ImportSource = Literal["local-config", "remote"]

logger = logging.getLogger(__name__)


def make_lifespan(deps: Dependencies) -> Any:
    """Build the server lifespan that reports the initial host load."""

    @asynccontextmanager
    async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        logger.info("sshbuddy server starting up (config=%s)", deps.store.path)

        aliases: list[str] = []
        try:
            result = await deps.aggregator.load()
            aliases = [h.alias for h in result.hosts]
        except SSHBuddyError as e:
            logger.warning("Initial host load failed: %s", e)

        logger.info(
            "Loaded %d SSH host(s): %s",
            len(aliases),
            ", ".join(aliases) if aliases else "(none)",
        )
        logger.info("sshbuddy server ready to accept connections")

        try:
            yield {"hosts": aliases}
        finally:
            logger.info("sshbuddy server shutting down")

    return app_lifespan


def configure_middleware(server: FastMCP, settings: Settings) -> None:
    """Configure middleware stack for the server.

    Adds middleware in order: ErrorHandling -> Logging (with timing).

    Args:
        server: The FastMCP server to configure.
        settings: Process settings supplying log options.
    """
    server.add_middleware(ErrorHandlingMiddleware(include_traceback=settings.include_traceback))
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=settings.slow_threshold_ms,
        )
    )


def register_tools(server: FastMCP, deps: Dependencies) -> None:
    """Register every host tool, bound to ``deps``."""

    @server.tool
    async def list_hosts(check_status: bool = False) -> str:
        """List SSH hosts merged from every enabled source, favorites first.

        Args:
            check_status: Also probe each host's SSH port for reachability.
        """
        return await handle_list_hosts(deps, check_status)

    @server.tool
    async def show_host(alias: str, source: SourceName | None = None) -> str:
        """Show one host's connection details as JSON.

        Args:
            alias: Host alias (case-insensitive).
            source: Show the record from this source instead of the merged winner.
        """
        return await handle_show_host(deps, alias, source)

    @server.tool
    async def connect_command(alias: str, source: SourceName | None = None) -> str:
        """Return the ssh command line that connects to a host.

        Args:
            alias: Host alias (case-insensitive).
            source: Use the record from this source instead of the merged winner.
        """
        return await handle_connect_command(deps, alias, source)

    @server.tool
    async def add_host(
        alias: str,
        hostname: str,
        user: str = "",
        port: str = "22",
        identity_file: str = "",
        proxy_jump: str = "",
        default_remote_path: str = "",
    ) -> str:
        """Add a manually managed SSH host.

        Args:
            alias: Unique name for the host.
            hostname: Address or DNS name.
            user: Login user.
            port: SSH port.
            identity_file: Private key path.
            proxy_jump: Jump host specification.
            default_remote_path: Directory to start the remote shell in.
        """
        return await handle_add_host(
            deps, alias, hostname, user, port, identity_file, proxy_jump, default_remote_path
        )

    @server.tool
    async def update_host(
        alias: str,
        new_alias: str | None = None,
        hostname: str | None = None,
        user: str | None = None,
        port: str | None = None,
        identity_file: str | None = None,
        proxy_jump: str | None = None,
        default_remote_path: str | None = None,
    ) -> str:
        """Change a manually managed host. Omitted fields are unchanged.

        Args:
            alias: Current alias of the manual host.
            new_alias: Rename the host.
            hostname: Address or DNS name.
            user: Login user.
            port: SSH port.
            identity_file: Private key path.
            proxy_jump: Jump host specification.
            default_remote_path: Directory to start the remote shell in.
        """
        return await handle_update_host(
            deps,
            alias,
            new_alias,
            hostname,
            user,
            port,
            identity_file,
            proxy_jump,
            default_remote_path,
        )

    @server.tool
    async def remove_host(alias: str) -> str:
        """Delete a manually managed host."""
        return await handle_remove_host(deps, alias)

    @server.tool
    async def toggle_favorite(alias: str) -> str:
        """Mark or unmark a host as favorite. Works for hosts from any source."""
        return await handle_toggle_favorite(deps, alias)

    @server.tool
    async def set_source_enabled(source: SourceName, enabled: bool) -> str:
        """Enable or disable one host source."""
        return await handle_set_source_enabled(deps, source, enabled)

    @server.tool
    async def configure_remote(base_url: str, enabled: bool = True) -> str:
        """Set the remote host service URL.

        Args:
            base_url: http(s) URL of the service.
            enabled: Whether to load hosts from it.
        """
        return await handle_configure_remote(deps, base_url, enabled)

    @server.tool
    async def authenticate_remote(username: str, password: str) -> str:
        """Log in to the remote host service and cache the session token."""
        return await handle_authenticate_remote(deps, username, password)

    @server.tool
    async def import_hosts(source: ImportSource, overwrite: bool = False) -> str:
        """Copy hosts from the SSH config or remote service into the manual list.

        Args:
            source: Where to import from.
            overwrite: Replace manual hosts that share an alias.
        """
        return await handle_import_hosts(deps, source, overwrite)

    @server.tool
    async def export_ssh_config() -> str:
        """Render manually managed hosts as SSH config text."""
        return await handle_export_ssh_config(deps)

    @server.tool
    async def check_hosts() -> str:
        """Probe every host's SSH port concurrently."""
        return await handle_check_hosts(deps)

    @server.tool(name="test_connection")
    async def connection_test(alias: str, source: SourceName | None = None) -> str:
        """Open and close an SSH session to verify a host accepts logins.

        Args:
            alias: Host alias (case-insensitive).
            source: Use the record from this source instead of the merged winner.
        """
        return await handle_test_connection(deps, alias, source)


def register_resources(server: FastMCP, deps: Dependencies) -> None:
    """Register the hosts resources, bound to ``deps``."""

    @server.resource("hosts://list", mime_type="text/plain")
    async def hosts_list() -> str:
        """Merged SSH hosts with reachability status."""
        return await list_hosts_resource(deps)

    @server.resource("hosts://{alias}", mime_type="application/json")
    async def host_detail(alias: str) -> str:
        """One host with its sources and per-source variants."""
        return await host_detail_resource(deps, alias)


def create_server(deps: Dependencies | None = None) -> FastMCP:
    """Create and configure the MCP server with middleware, tools and resources.

    Args:
        deps: Dependencies to bind; built from the environment when omitted.

    Returns:
        Configured FastMCP server instance
    """
    deps = deps or Dependencies.create()
    configure_logging(deps.settings.log_level, deps.settings.log_colors)

    server = FastMCP("sshbuddy", lifespan=make_lifespan(deps))

    configure_middleware(server, deps.settings)
    register_tools(server, deps)
    register_resources(server, deps)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server
