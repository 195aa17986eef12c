"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

import websockets
from websockets.asyncio.client import ClientConnection

from ergoclient.config import ClientSettings
from ergoclient.network.errors import SendError
from ergoclient.network.state import TransportState
from ergoclient.network.transport.base import BaseTransport, TransportListener

LOGGER = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006


class WebSocketTransport(BaseTransport):
    """One WebSocket connection driven by a background task."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None
        self._state = TransportState.CLOSED
        self._listener: Optional[TransportListener] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._writes: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> TransportState:
        return self._state

    def open(self, url: str, listener: TransportListener) -> None:
        if self._task is not None:
            raise RuntimeError("Transport handles cannot be reopened")
        self._listener = listener
        self._state = TransportState.CONNECTING
        self._task = asyncio.get_running_loop().create_task(self._run(url), name="transport-session")

    def send(self, payload: str) -> None:
        if self._state is not TransportState.OPEN or self._ws is None:
            raise SendError(f"WebSocket is {self._state.value}, cannot send")
        LOGGER.debug("WebSocket send: %s", payload)
        task = asyncio.get_running_loop().create_task(self._ws.send(payload), name="transport-send")
        self._writes.add(task)
        task.add_done_callback(self._write_done)

    def close(self, code: int = 1000, reason: str = "") -> None:
        if self._state in {TransportState.CLOSING, TransportState.CLOSED}:
            return
        if self._ws is None:
            # Still handshaking: abandon the attempt.
            self._state = TransportState.CLOSED
            if self._task is not None:
                self._task.cancel()
            return
        LOGGER.info("Closing WebSocket transport")
        self._state = TransportState.CLOSING
        ws = self._ws
        task = asyncio.get_running_loop().create_task(ws.close(code, reason), name="transport-close")
        self._writes.add(task)
        task.add_done_callback(self._write_done)

    async def wait_closed(self) -> None:
        pending = [task for task in (self._task, *self._writes) if task is not None]
        if not pending:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(*pending, return_exceptions=True)

    def _write_done(self, task: asyncio.Task[None]) -> None:
        self._writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning("WebSocket write failed: %s", exc)

    async def _run(self, url: str) -> None:
        assert self._listener is not None
        listener = self._listener
        LOGGER.info("Connecting to live server WebSocket at %s", url)
        try:
            ws = await websockets.connect(
                url,
                open_timeout=self._settings.open_timeout_seconds,
                ping_interval=self._settings.ping_interval_seconds,
            )
        except asyncio.CancelledError:
            self._state = TransportState.CLOSED
            raise
        except Exception as exc:  # noqa: BLE001
            self._state = TransportState.CLOSED
            LOGGER.warning("WebSocket handshake failed: %s", exc)
            listener.on_error(exc)
            listener.on_close(ABNORMAL_CLOSURE, str(exc), False)
            return

        self._ws = ws
        if self._state is TransportState.CONNECTING:
            self._state = TransportState.OPEN
            listener.on_open()

        was_clean = True
        try:
            async for raw in ws:
                LOGGER.debug("WebSocket receive: %s", raw)
                listener.on_message(raw)
        except websockets.ConnectionClosedError:
            was_clean = False
        except asyncio.CancelledError:
            self._state = TransportState.CLOSED
            with contextlib.suppress(Exception):
                await ws.close()
            raise
        except Exception as exc:  # noqa: BLE001
            was_clean = False
            LOGGER.warning("WebSocket receive failed: %s", exc)
            listener.on_error(exc)
            with contextlib.suppress(Exception):
                await ws.close()
        self._state = TransportState.CLOSED
        code = ws.close_code if ws.close_code is not None else ABNORMAL_CLOSURE
        listener.on_close(code, ws.close_reason or "", was_clean)
