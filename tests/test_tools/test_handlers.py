"""Tests for MCP tool handlers."""

import json
from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import pytest
from conftest import FakeRemote, StaticReader, host
from fastmcp.exceptions import ToolError

from sshbuddy.dependencies import Dependencies
from sshbuddy.errors import AuthRequired
from sshbuddy.models import Config, RemoteSettings, Source, SourceToggles
from sshbuddy.services import ConnectionCheck
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

REMOTE = Config(
    source_toggles=SourceToggles(remote=True),
    remote=RemoteSettings(enabled=True, base_url="https://hosts.example.com"),
)


@pytest.fixture
def deps(make_deps: Callable[..., Dependencies], write_config) -> Dependencies:
    """Dependencies with one manual and one local host sharing nothing."""
    write_config(Config(hosts=[host("web", user="deploy")], favorites={"db": True}))
    return make_deps(local=StaticReader([host("db", "10.0.0.5", Source.LOCAL_CONFIG, port="2222")]))


@pytest.mark.asyncio
async def test_list_hosts(deps: Dependencies) -> None:
    """Hosts list favorites first with their sources."""
    text = await handle_list_hosts(deps)

    lines = text.splitlines()
    assert lines[0].startswith("* db")
    assert "10.0.0.5:2222" in lines[0]
    assert "[local-config]" in lines[0]
    assert "deploy@web.example.com:22" in lines[1]


@pytest.mark.asyncio
async def test_list_hosts_with_status(deps: Dependencies) -> None:
    """check_status appends reachability."""
    statuses = {"10.0.0.5:2222:": 3.0, "web.example.com:22:deploy": None}

    with patch("sshbuddy.tools.handlers.check_hosts_online", AsyncMock(return_value=statuses)):
        text = await handle_list_hosts(deps, check_status=True)

    assert "online 3ms" in text
    assert "offline" in text


@pytest.mark.asyncio
async def test_list_hosts_reports_source_errors(make_deps: Callable[..., Dependencies]) -> None:
    """Failed sources are listed after the hosts."""
    deps = make_deps(local=StaticReader(error=OSError("unreadable")))

    text = await handle_list_hosts(deps)

    assert text.startswith("No hosts found.")
    assert "local-config unavailable" in text


@pytest.mark.asyncio
async def test_auth_required_becomes_tool_error(
    make_deps: Callable[..., Dependencies], write_config
) -> None:
    """AuthRequired points the client at authenticate_remote."""
    write_config(REMOTE)
    deps = make_deps(remote=FakeRemote(error=AuthRequired("https://hosts.example.com", "no session token")))

    with pytest.raises(ToolError, match="authenticate_remote"):
        await handle_list_hosts(deps)


@pytest.mark.asyncio
async def test_show_host_winner_and_variant(deps: Dependencies) -> None:
    """show_host returns the merged winner or a chosen variant."""
    merged = json.loads(await handle_show_host(deps, "DB"))
    assert merged["availableIn"] == ["local-config"]
    assert merged["favorite"] is True

    variant = json.loads(await handle_show_host(deps, "db", "local-config"))
    assert variant["port"] == "2222"
    assert "variants" not in variant


@pytest.mark.asyncio
async def test_show_host_errors(deps: Dependencies) -> None:
    """Unknown aliases and missing variants raise ToolError."""
    with pytest.raises(ToolError, match="Unknown host"):
        await handle_show_host(deps, "ghost")
    with pytest.raises(ToolError, match="not available in remote"):
        await handle_show_host(deps, "db", "remote")


@pytest.mark.asyncio
async def test_connect_command(deps: Dependencies) -> None:
    """connect_command returns a shell-quoted ssh command."""
    assert await handle_connect_command(deps, "db") == "ssh -p 2222 10.0.0.5"


@pytest.mark.asyncio
async def test_add_update_remove_cycle(deps: Dependencies) -> None:
    """Manual hosts can be added, changed and removed."""
    assert await handle_add_host(deps, " new ", "n.lan", user="me") == "Added new (me@n.lan:22)"
    assert await handle_update_host(deps, "new", port="2200") == "Updated new (me@n.lan:2200)"
    assert await handle_update_host(deps, "new", new_alias="renamed") == "Updated renamed (me@n.lan:2200)"
    assert await handle_remove_host(deps, "renamed") == "Removed renamed"

    assert [h.alias for h in deps.store.read_raw().hosts] == ["web"]


@pytest.mark.asyncio
async def test_update_keeps_concurrent_changes(deps: Dependencies, monkeypatch) -> None:
    """A write landing before the update is not overwritten by stale fields."""
    original_update = deps.store.update

    def racing_update(mutator):
        deps.store.write(Config(hosts=[host("web", "moved.lan", user="deploy")], favorites={"db": True}))
        return original_update(mutator)

    monkeypatch.setattr(deps.store, "update", racing_update)

    assert await handle_update_host(deps, "web", port="2200") == "Updated web (deploy@moved.lan:2200)"


@pytest.mark.asyncio
async def test_add_duplicate_is_tool_error(deps: Dependencies) -> None:
    """Validation failures surface as ToolError."""
    with pytest.raises(ToolError, match="already exists"):
        await handle_add_host(deps, "WEB", "x")


@pytest.mark.asyncio
async def test_update_unknown_manual_host(deps: Dependencies) -> None:
    """Only manual hosts can be updated."""
    with pytest.raises(ToolError, match="No manual host"):
        await handle_update_host(deps, "db", user="x")


@pytest.mark.asyncio
async def test_remove_unknown_is_tool_error(deps: Dependencies) -> None:
    """Removing an unknown alias is a ToolError with a clean message."""
    with pytest.raises(ToolError, match="^No manual host with alias 'ghost'$"):
        await handle_remove_host(deps, "ghost")


@pytest.mark.asyncio
async def test_toggle_favorite(deps: Dependencies) -> None:
    """toggle_favorite reports the new state."""
    assert await handle_toggle_favorite(deps, "db") == "db removed from favorites"
    assert await handle_toggle_favorite(deps, "web") == "web added to favorites"


@pytest.mark.asyncio
async def test_set_source_enabled(deps: Dependencies) -> None:
    """Disabling local-config hides its hosts."""
    assert await handle_set_source_enabled(deps, "local-config", False) == "Source local-config disabled"

    assert "db" not in await handle_list_hosts(deps)


@pytest.mark.asyncio
async def test_set_unknown_source(deps: Dependencies) -> None:
    """Unknown source names are rejected."""
    with pytest.raises(ToolError):
        await handle_set_source_enabled(deps, "ldap", True)


@pytest.mark.asyncio
async def test_configure_remote(deps: Dependencies) -> None:
    """configure_remote validates and stores the URL."""
    text = await handle_configure_remote(deps, "https://hosts.example.com/")
    assert text == "Remote source enabled: https://hosts.example.com"

    with pytest.raises(ToolError, match="http"):
        await handle_configure_remote(deps, "hosts.example.com")


@pytest.mark.asyncio
async def test_authenticate_remote(make_deps: Callable[..., Dependencies], write_config) -> None:
    """authenticate_remote caches the token."""
    write_config(REMOTE)
    deps = make_deps(remote=FakeRemote())

    text = await handle_authenticate_remote(deps, "me", "pw")

    assert text == "Authenticated; token valid until 4000000000"
    assert deps.store.read_raw().remote.token == "fresh-token"


@pytest.mark.asyncio
async def test_authenticate_remote_unconfigured(deps: Dependencies) -> None:
    """authenticate_remote without a remote is a ToolError."""
    with pytest.raises(ToolError, match="remote unavailable"):
        await handle_authenticate_remote(deps, "me", "pw")


@pytest.mark.asyncio
async def test_import_and_export(deps: Dependencies) -> None:
    """Imported local hosts appear in the exported SSH config."""
    summary = await handle_import_hosts(deps, "local-config")
    assert summary == "Import from local-config complete! Imported: 1, Updated: 0, Skipped: 0"

    exported = await handle_export_ssh_config(deps)
    assert exported.startswith("# Generated by SSHBuddy\n")
    assert "Host db\n    HostName 10.0.0.5\n    Port 2222\n" in exported


@pytest.mark.asyncio
async def test_check_hosts(deps: Dependencies) -> None:
    """check_hosts summarises reachability."""
    statuses = {"10.0.0.5:2222:": 1.0}

    with patch("sshbuddy.tools.handlers.check_hosts_online", AsyncMock(return_value=statuses)):
        text = await handle_check_hosts(deps)

    assert "[✓] db (10.0.0.5:2222) online 1ms" in text
    assert "[✗] web" in text
    assert text.splitlines()[-1] == "1/2 hosts online"


@pytest.mark.asyncio
async def test_test_connection_uses_settings(make_deps: Callable[..., Dependencies], write_config) -> None:
    """The connection test uses the configured known_hosts and timeout."""
    write_config(Config(hosts=[host("web")]))
    deps = make_deps(known_hosts="none", connect_timeout=3.0)
    check = AsyncMock(return_value=ConnectionCheck("web", True, "connected to web.example.com:22"))

    with patch("sshbuddy.tools.handlers.check_connection", check):
        text = await handle_test_connection(deps, "web")

    assert text == "[✓] web: connected to web.example.com:22"
    assert check.call_args.kwargs == {"known_hosts": None, "timeout": 3.0}


@pytest.mark.asyncio
async def test_test_connection_refuses_missing_known_hosts(
    make_deps: Callable[..., Dependencies], write_config, tmp_path, monkeypatch
) -> None:
    """Strict host key checking without a known_hosts file is a ToolError."""
    monkeypatch.setenv("HOME", str(tmp_path))
    write_config(Config(hosts=[host("web")]))
    deps = make_deps()
    check = AsyncMock()

    with patch("sshbuddy.tools.handlers.check_connection", check):
        with pytest.raises(ToolError, match="known_hosts not found"):
            await handle_test_connection(deps, "web")

    check.assert_not_called()
