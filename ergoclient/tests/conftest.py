from __future__ import annotations

from typing import Callable

import pytest

from ergoclient.config import ClientSettings
from ergoclient.network.registry import SessionRegistry
from ergoclient.network.state import TransportState
from ergoclient.network.transport.dummy import DummyTransport

URL = "ws://host/ws"


class ManualTransport(DummyTransport):
    """Transport whose lifecycle events are fired by the test."""

    def __init__(self, settings=None) -> None:
        super().__init__(settings)
        self.close_calls = 0

    def open(self, url, listener) -> None:
        self.url = url
        self._listener = listener
        self._state = TransportState.CONNECTING

    def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        super().close(code, reason)

    def fire_open(self) -> None:
        self._state = TransportState.OPEN
        self._listener.on_open()

    def fire_message(self, raw) -> None:
        self._listener.on_message(raw)

    def fire_error(self, exc: Exception) -> None:
        self._listener.on_error(exc)

    def fire_close(self, code: int, reason: str = "", was_clean: bool = False) -> None:
        self._state = TransportState.CLOSED
        self._listener.on_close(code, reason, was_clean)


@pytest.fixture
def transports() -> list[ManualTransport]:
    return []


@pytest.fixture
def make_registry(transports) -> Callable[..., SessionRegistry]:
    def _make(**overrides) -> SessionRegistry:
        settings = ClientSettings(**overrides)

        def _factory(s: ClientSettings) -> ManualTransport:
            transport = ManualTransport(s)
            transports.append(transport)
            return transport

        return SessionRegistry(settings=settings, transport_factory=_factory, endpoint=lambda: URL)

    return _make


@pytest.fixture
def registry(make_registry) -> SessionRegistry:
    return make_registry()
