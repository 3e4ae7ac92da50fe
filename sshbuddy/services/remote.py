"""Remote host-listing API client."""

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib import error, parse, request

from sshbuddy.errors import AuthRequired, SourceUnavailable
from sshbuddy.models import DEFAULT_PORT, Host, RemoteSession, Source

logger = logging.getLogger(__name__)

LOGIN_PATH = "/users/login"
HOSTS_PATH = "/ssh/db/host"
TOKEN_HEADER = "X-Session-Token"
EXPIRY_HEADER = "X-Session-Expires"
_AUTH_STATUSES = {401, 403}


def validate_http_url(url: str) -> str:
    parsed = parse.urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"remote base URL must be an http(s) URL, got: {url!r}")
    return url


def _parse_expiry(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _first(entry: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return str(value)
    return ""


def host_from_remote(entry: Mapping[str, Any]) -> Host | None:
    """Convert one API host entry into a ``Host``; ``None`` if it has no alias."""
    alias = _first(entry, "name", "alias")
    hostname = _first(entry, "ip", "hostname", "host")
    if not alias:
        alias = hostname
    if not alias:
        return None
    return Host(
        alias=alias,
        hostname=hostname or alias,
        user=_first(entry, "username", "user"),
        port=_first(entry, "port") or DEFAULT_PORT,
        identity_file=_first(entry, "identityFile", "keyPath"),
        proxy_jump=_first(entry, "proxyJump", "jumpHost"),
        default_remote_path=_first(entry, "defaultRemotePath", "defaultPath"),
        source=Source.REMOTE,
    )


@dataclass
class RemoteHostClient:
    """Client for a remote host-listing service.

    The client caches one session token. Callers read it back with
    ``current_token()`` after a fetch, which may have obtained or rotated it.
    """

    base_url: str
    token: str = ""
    token_expiry: int = 0
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        self.base_url = validate_http_url(self.base_url.strip().rstrip("/"))

    @property
    def session(self) -> RemoteSession:
        return RemoteSession(token=self.token, expiry=self.token_expiry)

    def current_token(self) -> tuple[str, int]:
        """Return the cached ``(token, expiry)``."""
        return self.token, self.token_expiry

    def authenticate(
        self, username: str, password: str, deadline: float | None = None
    ) -> tuple[str, int]:
        """Log in and cache the returned token.

        Args:
            username: Login name
            password: Login password
            deadline: ``time.monotonic()`` value the request must finish by

        Returns:
            ``(token, expiry)``; expiry is a Unix timestamp or 0

        Raises:
            AuthRequired: If the credentials are rejected
            SourceUnavailable: On network or protocol failure
        """
        _, data, _ = self._request(
            "POST",
            LOGIN_PATH,
            payload={"username": username, "password": password},
            authenticated=False,
            deadline=deadline,
        )
        if not isinstance(data, dict):
            data = {}
        token = data.get("token") or data.get("jwt")
        if not token:
            raise SourceUnavailable(Source.REMOTE, "login response did not include a token")
        self.token = str(token)
        self.token_expiry = _parse_expiry(data.get("expiresAt") or data.get("expiry"))
        logger.info("Authenticated with %s as %s", self.base_url, username)
        return self.token, self.token_expiry

    def fetch_hosts(
        self,
        username: str | None = None,
        password: str | None = None,
    ) -> list[Host]:
        """Fetch the remote host list.

        Login and listing share one ``timeout_seconds`` budget, so a fetch
        that has to log in first still finishes within it.

        Args:
            username: Used to log in when no valid token is cached
            password: Used with ``username``

        Raises:
            AuthRequired: If no valid token is available or the server
                rejects it
            SourceUnavailable: On network, HTTP or decode failure
        """
        deadline = time.monotonic() + self.timeout_seconds
        if not self.session.is_valid():
            if username and password:
                self.authenticate(username, password, deadline)
            else:
                reason = "session expired" if self.token else "no session token"
                raise AuthRequired(self.base_url, reason)

        _, data, headers = self._request("GET", HOSTS_PATH, deadline=deadline)
        self._absorb_rotated_token(headers)

        entries = data.get("hosts", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise SourceUnavailable(Source.REMOTE, "host list response is not a list")

        hosts = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            host = host_from_remote(entry)
            if host is None:
                logger.debug("Skipping remote host entry without name: %r", entry)
                continue
            hosts.append(host)

        logger.info("Fetched %d host(s) from %s", len(hosts), self.base_url)
        return hosts

    def _absorb_rotated_token(self, headers: Mapping[str, str]) -> None:
        rotated = headers.get(TOKEN_HEADER)
        if rotated and rotated != self.token:
            logger.debug("Remote rotated session token")
            self.token = rotated
            self.token_expiry = _parse_expiry(headers.get(EXPIRY_HEADER))

    def _request(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
        authenticated: bool = True,
        deadline: float | None = None,
    ) -> tuple[int, Any, Mapping[str, str]]:
        timeout = self.timeout_seconds
        if deadline is not None:
            timeout = min(timeout, deadline - time.monotonic())
            if timeout <= 0:
                raise SourceUnavailable(
                    Source.REMOTE, f"timed out after {self.timeout_seconds:g}s before {path}"
                )

        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if authenticated and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = request.Request(url, data=data, headers=headers, method=method)
        start = time.perf_counter()
        try:
            with request.urlopen(req, timeout=timeout) as resp:  # nosec B310
                status = resp.status
                body = resp.read().decode("utf-8")
                resp_headers = resp.headers or {}
        except error.HTTPError as exc:
            if exc.code in _AUTH_STATUSES:
                raise AuthRequired(self.base_url, f"HTTP {exc.code}") from exc
            raise SourceUnavailable(Source.REMOTE, f"HTTP {exc.code} from {path}") from exc
        except (error.URLError, TimeoutError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise SourceUnavailable(Source.REMOTE, f"{self.base_url}: {reason}") from exc

        logger.debug(
            "%s %s -> %d (%.1fms)",
            method,
            url,
            status,
            (time.perf_counter() - start) * 1000,
        )

        if status in _AUTH_STATUSES:
            raise AuthRequired(self.base_url, f"HTTP {status}")
        if not 200 <= status < 300:
            raise SourceUnavailable(Source.REMOTE, f"HTTP {status} from {path}")

        try:
            parsed = json.loads(body) if body.strip() else {}
        except json.JSONDecodeError as exc:
            raise SourceUnavailable(Source.REMOTE, f"invalid JSON from {path}") from exc
        return status, parsed, resp_headers
