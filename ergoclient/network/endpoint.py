"""Endpoint resolution for the live server WebSocket."""

from __future__ import annotations

import logging
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ergoclient.config import ClientSettings
from ergoclient.network.errors import InvalidEndpoint

LOGGER = logging.getLogger(__name__)

TokenSupplier = Callable[[], Optional[str]]

_SCHEME_FOR_ORIGIN = {"https": "wss", "http": "ws", "wss": "wss", "ws": "ws"}


def validate_ws_url(url: str) -> str:
    """Return ``url`` unchanged if it is an absolute ws/wss URL with a host."""

    if not isinstance(url, str) or not url.strip():
        raise InvalidEndpoint("Connection URL must be a non-empty string")
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise InvalidEndpoint(f"Malformed connection URL {url!r}: {exc}") from exc
    if parts.scheme not in {"ws", "wss"}:
        raise InvalidEndpoint(f"Unsupported URL scheme {parts.scheme!r} in {url!r}; expected ws or wss")
    if not parts.hostname:
        raise InvalidEndpoint(f"Connection URL {url!r} has no host")
    return url


def build_ws_url(host: str, *, secure: bool = False, path: str = "/ws") -> str:
    scheme = "wss" if secure else "ws"
    if not path.startswith("/"):
        path = "/" + path
    return f"{scheme}://{host}{path}"


def url_from_origin(origin: str, path: str = "/ws") -> str:
    """Map a page origin such as ``https://example.com`` onto its WebSocket URL."""

    parts = urlsplit(origin)
    scheme = _SCHEME_FOR_ORIGIN.get(parts.scheme)
    if scheme is None or not parts.netloc:
        raise InvalidEndpoint(f"Cannot derive a WebSocket URL from origin {origin!r}")
    return build_ws_url(parts.netloc, secure=scheme == "wss", path=path)


def with_token(url: str, token: str) -> str:
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "token"]
    query.append(("token", token))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class EndpointProvider:
    """Resolves the connection URL before every connect attempt."""

    def __init__(self, settings: ClientSettings, token_supplier: Optional[TokenSupplier] = None) -> None:
        self._settings = settings
        self._token_supplier = token_supplier

    def base_url(self) -> str:
        if self._settings.server_url is not None:
            return str(self._settings.server_url)
        return build_ws_url(
            self._settings.server_host,
            secure=self._settings.server_secure,
            path=self._settings.server_path,
        )

    def resolve(self) -> str:
        url = validate_ws_url(self.base_url())
        token = self._token_supplier() if self._token_supplier else self._settings.auth_token
        if token:
            url = with_token(url, token)
        return url

    __call__ = resolve
