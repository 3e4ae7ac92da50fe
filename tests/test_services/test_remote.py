"""Tests for the remote host-listing client."""

import io
import json
from typing import Any
from unittest.mock import MagicMock, patch
from urllib import error

import pytest

from sshbuddy.errors import AuthRequired, SourceUnavailable
from sshbuddy.models import Source
from sshbuddy.services.remote import RemoteHostClient, host_from_remote, validate_http_url

BASE = "https://hosts.example.com"


def response(body: Any, status: int = 200, headers: dict[str, str] | None = None) -> MagicMock:
    """Build a urlopen context manager returning ``body`` as JSON."""
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = json.dumps(body).encode("utf-8")
    resp.headers = headers or {}
    cm = MagicMock()
    cm.__enter__.return_value = resp
    cm.__exit__.return_value = False
    return cm


def clock(readings: list[float]) -> MagicMock:
    """Stand-in for the time module with scripted monotonic readings."""
    fake = MagicMock()
    fake.monotonic.side_effect = readings
    fake.perf_counter.return_value = 0.0
    return fake


def http_error(code: int) -> error.HTTPError:
    return error.HTTPError(BASE, code, "err", {}, io.BytesIO(b""))  # type: ignore[arg-type]


def test_validate_http_url() -> None:
    """Only http(s) URLs with a host are accepted."""
    assert validate_http_url(BASE) == BASE
    for bad in ("", "ftp://x", "hosts.example.com", "https://"):
        with pytest.raises(ValueError):
            validate_http_url(bad)


def test_client_strips_trailing_slash() -> None:
    """Base URL is normalised without a trailing slash."""
    assert RemoteHostClient(BASE + "/").base_url == BASE


def test_host_from_remote_maps_fields() -> None:
    """API entries map onto host fields."""
    host = host_from_remote(
        {"name": "db", "ip": "10.0.0.5", "username": "pg", "port": 2222, "keyPath": "/k"}
    )

    assert host is not None
    assert host.alias == "db"
    assert host.hostname == "10.0.0.5"
    assert host.user == "pg"
    assert host.port == "2222"
    assert host.identity_file == "/k"
    assert host.source is Source.REMOTE


def test_host_from_remote_without_name_or_address() -> None:
    """Entries with neither name nor address are dropped."""
    assert host_from_remote({"username": "x"}) is None


def test_fetch_without_token_requires_auth() -> None:
    """No cached token and no credentials raises AuthRequired without I/O."""
    client = RemoteHostClient(BASE)

    with patch("sshbuddy.services.remote.request.urlopen") as mock_open:
        with pytest.raises(AuthRequired, match="no session token"):
            client.fetch_hosts()

    mock_open.assert_not_called()


def test_fetch_with_expired_token_requires_auth() -> None:
    """An expired token reports the session as expired."""
    client = RemoteHostClient(BASE, token="t", token_expiry=1)

    with pytest.raises(AuthRequired, match="session expired"):
        client.fetch_hosts()


def test_fetch_hosts_with_token() -> None:
    """A valid token fetches and parses the host list."""
    client = RemoteHostClient(BASE, token="tok")
    body = [{"name": "web", "ip": "10.0.0.1"}, {"bogus": True}, "junk"]

    with patch("sshbuddy.services.remote.request.urlopen", return_value=response(body)) as mock_open:
        hosts = client.fetch_hosts()

    assert [h.alias for h in hosts] == ["web"]
    req = mock_open.call_args[0][0]
    assert req.full_url == BASE + "/ssh/db/host"
    assert req.get_header("Authorization") == "Bearer tok"
    assert client.current_token() == ("tok", 0)


def test_fetch_accepts_wrapped_host_list() -> None:
    """``{"hosts": [...]}`` responses are unwrapped."""
    client = RemoteHostClient(BASE, token="tok")
    body = {"hosts": [{"alias": "a", "hostname": "h"}]}

    with patch("sshbuddy.services.remote.request.urlopen", return_value=response(body)):
        hosts = client.fetch_hosts()

    assert [h.alias for h in hosts] == ["a"]


def test_fetch_logs_in_with_credentials() -> None:
    """Credentials are used to log in when no token is cached."""
    client = RemoteHostClient(BASE)
    login = response({"token": "new", "expiresAt": 4_000_000_000})
    hosts = response([])

    with patch("sshbuddy.services.remote.request.urlopen", side_effect=[login, hosts]) as mock_open:
        client.fetch_hosts("me", "pw")

    login_req = mock_open.call_args_list[0][0][0]
    assert login_req.full_url == BASE + "/users/login"
    assert login_req.get_method() == "POST"
    assert json.loads(login_req.data) == {"username": "me", "password": "pw"}
    assert client.current_token() == ("new", 4_000_000_000)


def test_fetch_absorbs_rotated_token() -> None:
    """A token header on the response replaces the cached token."""
    client = RemoteHostClient(BASE, token="old")
    rotated = response([], headers={"X-Session-Token": "rot", "X-Session-Expires": "4000000000"})

    with patch("sshbuddy.services.remote.request.urlopen", return_value=rotated):
        client.fetch_hosts()

    assert client.current_token() == ("rot", 4_000_000_000)


@pytest.mark.parametrize("code", [401, 403])
def test_auth_status_raises_auth_required(code: int) -> None:
    """401 and 403 mean the token was rejected."""
    client = RemoteHostClient(BASE, token="tok")

    with patch("sshbuddy.services.remote.request.urlopen", side_effect=http_error(code)):
        with pytest.raises(AuthRequired, match=f"HTTP {code}"):
            client.fetch_hosts()


def test_server_error_is_source_unavailable() -> None:
    """Other HTTP errors report the remote source unavailable."""
    client = RemoteHostClient(BASE, token="tok")

    with patch("sshbuddy.services.remote.request.urlopen", side_effect=http_error(500)):
        with pytest.raises(SourceUnavailable) as exc_info:
            client.fetch_hosts()

    assert exc_info.value.source == "remote"


def test_network_error_is_source_unavailable() -> None:
    """Connection failures report the remote source unavailable."""
    client = RemoteHostClient(BASE, token="tok")

    with patch(
        "sshbuddy.services.remote.request.urlopen",
        side_effect=error.URLError("connection refused"),
    ):
        with pytest.raises(SourceUnavailable, match="connection refused"):
            client.fetch_hosts()


def test_invalid_json_is_source_unavailable() -> None:
    """Undecodable bodies report the remote source unavailable."""
    client = RemoteHostClient(BASE, token="tok")
    cm = response([])
    cm.__enter__.return_value.read.return_value = b"<html>"

    with patch("sshbuddy.services.remote.request.urlopen", return_value=cm):
        with pytest.raises(SourceUnavailable, match="invalid JSON"):
            client.fetch_hosts()


def test_login_without_token_in_response() -> None:
    """A login response lacking a token is a protocol failure."""
    client = RemoteHostClient(BASE)

    with patch("sshbuddy.services.remote.request.urlopen", return_value=response({})):
        with pytest.raises(SourceUnavailable, match="did not include a token"):
            client.authenticate("me", "pw")


def test_login_and_listing_share_one_timeout() -> None:
    """Time spent logging in is taken off the listing request's timeout."""
    client = RemoteHostClient(BASE, timeout_seconds=10.0)
    login = response({"token": "new", "expiresAt": 4_000_000_000})
    hosts = response([])

    with (
        patch("sshbuddy.services.remote.time", clock([100.0, 100.0, 106.0])),
        patch("sshbuddy.services.remote.request.urlopen", side_effect=[login, hosts]) as mock_open,
    ):
        client.fetch_hosts("me", "pw")

    timeouts = [c.kwargs["timeout"] for c in mock_open.call_args_list]
    assert timeouts == [10.0, 4.0]


def test_exhausted_timeout_skips_listing_request() -> None:
    """A login that uses up the whole budget fails without a second request."""
    client = RemoteHostClient(BASE, timeout_seconds=5.0)
    login = response({"token": "new", "expiresAt": 4_000_000_000})

    with (
        patch("sshbuddy.services.remote.time", clock([100.0, 100.0, 105.5])),
        patch("sshbuddy.services.remote.request.urlopen", side_effect=[login]) as mock_open,
    ):
        with pytest.raises(SourceUnavailable, match="timed out"):
            client.fetch_hosts("me", "pw")

    assert mock_open.call_count == 1
