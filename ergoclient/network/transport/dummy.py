"""No-op transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ergoclient.network.errors import SendError
from ergoclient.network.state import TransportState
from ergoclient.network.transport.base import BaseTransport, TransportListener

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Opens on the next loop iteration, logs sends and closes cleanly."""

    def __init__(self, settings=None) -> None:
        self._settings = settings
        self._state = TransportState.CLOSED
        self._listener: Optional[TransportListener] = None
        self.url: Optional[str] = None
        self.sent: list[str] = []

    @property
    def state(self) -> TransportState:
        return self._state

    def open(self, url: str, listener: TransportListener) -> None:
        if self._listener is not None:
            raise RuntimeError("Transport handles cannot be reopened")
        LOGGER.debug("Dummy transport open(%s)", url)
        self.url = url
        self._listener = listener
        self._state = TransportState.CONNECTING
        asyncio.get_running_loop().call_soon(self._opened)

    def _opened(self) -> None:
        if self._state is not TransportState.CONNECTING or self._listener is None:
            return
        self._state = TransportState.OPEN
        self._listener.on_open()

    def send(self, payload: str) -> None:
        if self._state is not TransportState.OPEN:
            raise SendError(f"Transport is {self._state.value}, cannot send")
        LOGGER.debug("Dummy transport send(): %s", payload)
        self.sent.append(payload)

    def close(self, code: int = 1000, reason: str = "") -> None:
        if self._state in {TransportState.CLOSING, TransportState.CLOSED}:
            return
        LOGGER.debug("Dummy transport close()")
        self._state = TransportState.CLOSED
        if self._listener is not None:
            self._listener.on_close(code, reason, True)
