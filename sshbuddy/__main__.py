"""Entry point for the sshbuddy server."""

import logging

from sshbuddy.dependencies import Dependencies
from sshbuddy.server import create_server

logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the MCP server with the configured transport."""
    deps = Dependencies.create()
    settings = deps.settings
    mcp = create_server(deps)

    if settings.transport == "stdio":
        logger.info("Starting sshbuddy server (transport=stdio)")
        mcp.run(transport="stdio")
    else:
        logger.info(
            "Starting sshbuddy server (transport=http, host=%s, port=%d)",
            settings.http_host,
            settings.http_port,
        )
        mcp.run(
            transport="http",
            host=settings.http_host,
            port=settings.http_port,
        )


if __name__ == "__main__":
    run_server()
