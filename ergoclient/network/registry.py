"""Process-wide live session shared by every consumer.

The registry is the single writer of session state:
- owns at most one transport handle and reacts to its events
- keeps the shared message buffer
- drives the reconnection scheduler after uncommanded closes
- publishes snapshots to attached observers

Every mutation is a plain synchronous method running on the event loop, so
transport callbacks, timer firings and consumer calls never interleave.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from shared.models.envelope import MessageEnvelope
from shared.protocol.codec import DecodeFailure, decode_envelope, encode_envelope

from ergoclient.config import ClientSettings
from ergoclient.network.buffer import MessageBuffer
from ergoclient.network.endpoint import EndpointProvider, validate_ws_url
from ergoclient.network.errors import (
    ConnectFailure,
    InvalidEndpoint,
    NotConnected,
    SendError,
    SessionError,
    TransportError,
    UncleanClose,
)
from ergoclient.network.reconnect import ReconnectScheduler
from ergoclient.network.state import ConnectionState, SessionSnapshot, TransportState
from ergoclient.network.subscription import ConsumerSubscription
from ergoclient.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)


class SessionObserver(Protocol):
    def state_changed(self, snapshot: SessionSnapshot) -> None:
        ...

    def message_received(self, envelope: MessageEnvelope, snapshot: SessionSnapshot) -> None:
        ...


class _TransportEvents:
    """Forwards one transport's events tagged with the generation it was opened under."""

    def __init__(self, registry: "SessionRegistry", generation: int) -> None:
        self._registry = registry
        self._generation = generation

    def on_open(self) -> None:
        self._registry._handle_open(self._generation)

    def on_message(self, raw: str | bytes) -> None:
        self._registry._handle_message(self._generation, raw)

    def on_error(self, exc: Exception) -> None:
        self._registry._handle_error(self._generation, exc)

    def on_close(self, code: int, reason: str, was_clean: bool) -> None:
        self._registry._handle_close(self._generation, code, reason, was_clean)


@dataclass
class SessionRegistry:
    """Owner of the shared connection, its state and its message history."""

    settings: ClientSettings
    transport_factory: Callable[[ClientSettings], BaseTransport]
    endpoint: Optional[Callable[[], str]] = None

    transports_created: int = field(default=0, init=False)
    _transport: Optional[BaseTransport] = field(default=None, init=False, repr=False)
    _state: ConnectionState = field(default=ConnectionState.DISCONNECTED, init=False, repr=False)
    _error: Optional[str] = field(default=None, init=False, repr=False)
    _failure: Optional[SessionError] = field(default=None, init=False, repr=False)
    _buffer: MessageBuffer = field(init=False, repr=False)
    _scheduler: ReconnectScheduler = field(init=False, repr=False)
    _observers: list[SessionObserver] = field(default_factory=list, init=False, repr=False)
    _consumer_count: int = field(default=0, init=False, repr=False)
    _inflight: bool = field(default=False, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _url: Optional[str] = field(default=None, init=False, repr=False)
    _closing: list[BaseTransport] = field(default_factory=list, init=False, repr=False)
    _initialised: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.endpoint is None:
            self.endpoint = EndpointProvider(self.settings)
        self._buffer = MessageBuffer(self.settings.message_buffer_size)
        self._scheduler = ReconnectScheduler(self.settings.reconnect_delay_seconds, self._retry)

    # ---- read-only views ----
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def connecting(self) -> bool:
        return self._state.is_connecting

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def failure(self) -> Optional[SessionError]:
        """Typed form of :attr:`error`."""

        return self._failure

    @property
    def last_message(self) -> Optional[MessageEnvelope]:
        return self._buffer.latest()

    @property
    def messages(self) -> tuple[MessageEnvelope, ...]:
        return self._buffer.all()

    @property
    def consumer_count(self) -> int:
        return self._consumer_count

    @property
    def transport(self) -> Optional[BaseTransport]:
        return self._transport

    @property
    def scheduler(self) -> ReconnectScheduler:
        return self._scheduler

    @property
    def reconnect_pending(self) -> bool:
        return self._scheduler.pending

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            error=self._error,
            last_message=self._buffer.latest(),
            messages=self._buffer.all(),
            consumer_count=self._consumer_count,
            reconnect_pending=self._scheduler.pending,
        )

    # ---- consumers ----
    def subscribe(self) -> ConsumerSubscription:
        """Return a new consumer handle attached to this session."""

        return ConsumerSubscription(self)

    def attach(self, observer: SessionObserver) -> None:
        if observer in self._observers:
            return
        self._observers.append(observer)
        self._consumer_count += 1
        if not self._initialised:
            self._initialised = True
            LOGGER.info("Live session initialised")
        LOGGER.debug("Consumer attached (consumers=%s)", self._consumer_count)

    def detach(self, observer: SessionObserver) -> None:
        """Stop notifying ``observer``; the shared connection is left untouched."""

        try:
            self._observers.remove(observer)
        except ValueError:
            return
        self._consumer_count -= 1
        LOGGER.debug("Consumer detached (consumers=%s)", self._consumer_count)

    # ---- operations ----
    def connect(self, url: Optional[str] = None) -> None:
        """Open the shared connection, or reuse the one that is open or opening.

        ``url`` pins the endpoint for this and later attempts (including
        automatic retries); otherwise the endpoint provider is asked each time.
        Raises :class:`InvalidEndpoint` for a malformed URL.
        """

        if url is not None:
            self._url = url
        self._connect(ConnectionState.CONNECTING)

    def disconnect(self) -> None:
        """Close the shared connection and suppress any pending retry."""

        LOGGER.info("Disconnect requested")
        self._scheduler.cancel()
        self._generation += 1
        self._inflight = False
        transport = self._transport
        self._transport = None
        if transport is not None:
            self._closing.append(transport)
            try:
                transport.close()
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress transport close error", exc_info=True)
        self._set_state(ConnectionState.DISCONNECTED, force=True)

    def send(self, message: MessageEnvelope | Mapping[str, Any]) -> None:
        """Fire-and-forget send; raises :class:`NotConnected` unless connected."""

        transport = self._transport
        if self._state is not ConnectionState.CONNECTED or transport is None:
            LOGGER.error("WebSocket is not connected; message not sent")
            raise NotConnected(f"Cannot send while {self._state.value}")
        payload = encode_envelope(message)
        try:
            transport.send(payload)
        except SendError as exc:
            LOGGER.error("WebSocket is not connected; message not sent: %s", exc)
            raise NotConnected(str(exc)) from exc

    def clear_messages(self) -> None:
        self._buffer.clear()
        self._publish_state()

    async def wait_closed(self) -> None:
        """Wait for transports released by :meth:`disconnect` to finish closing."""

        closing, self._closing = self._closing, []
        if closing:
            await asyncio.gather(*(transport.wait_closed() for transport in closing), return_exceptions=True)

    # ---- internals ----
    def _connect(self, attempt_state: ConnectionState) -> None:
        if self._inflight:
            LOGGER.debug("Connection attempt already in progress, skipping")
            return

        existing = self._transport
        if existing is not None:
            if existing.state is TransportState.OPEN:
                LOGGER.debug("Reusing connected transport")
                self._set_state(ConnectionState.CONNECTED)
                return
            if existing.state is TransportState.CONNECTING:
                LOGGER.debug("Reusing connecting transport")
                if not self._state.is_connecting:
                    self._set_state(ConnectionState.CONNECTING)
                return
            LOGGER.debug("Releasing stale transport in state %s", existing.state.value)
            self._transport = None

        try:
            url = self._resolve_url()
        except InvalidEndpoint as exc:
            self._record(exc, str(exc))
            self._set_state(ConnectionState.DISCONNECTED, force=True)
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to resolve live session endpoint: %s", exc)
            self._state = ConnectionState.DISCONNECTED
            self._record_connect_failure(exc)
            self._publish_state()
            return

        self._generation += 1
        generation = self._generation
        self._inflight = True
        self._state = attempt_state
        self._clear_error()
        try:
            transport = self.transport_factory(self.settings)
            self._transport = transport
            self.transports_created += 1
            LOGGER.info("Opening live session transport to %s", url)
            transport.open(url, _TransportEvents(self, generation))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to open transport to %s: %s", url, exc)
            self._inflight = False
            self._transport = None
            self._state = ConnectionState.DISCONNECTED
            self._record_connect_failure(exc)
        self._publish_state()

    def _record_connect_failure(self, exc: Exception) -> None:
        failure = ConnectFailure(str(exc) or type(exc).__name__)
        failure.__cause__ = exc
        self._record(failure, f"Failed to connect: {failure}")
        self._scheduler.schedule()

    def _resolve_url(self) -> str:
        url = self._url if self._url is not None else self.endpoint()  # type: ignore[misc]
        return validate_ws_url(url)

    def _retry(self) -> None:
        LOGGER.info("Reconnecting live session")
        try:
            self._connect(ConnectionState.RECONNECTING)
        except InvalidEndpoint:
            LOGGER.error("Reconnect abandoned: %s", self._error)

    def _handle_open(self, generation: int) -> None:
        if generation != self._generation:
            LOGGER.debug("Ignoring open from superseded transport")
            return
        LOGGER.info("Live session connected")
        self._inflight = False
        self._scheduler.cancel()
        self._state = ConnectionState.CONNECTED
        self._clear_error()
        self._publish_state()

    def _handle_message(self, generation: int, raw: str | bytes) -> None:
        if generation != self._generation:
            return
        try:
            envelope = decode_envelope(raw)
        except DecodeFailure as exc:
            LOGGER.warning("Failed to parse WebSocket message: %s", exc)
            return
        self._buffer.push(envelope)
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer.message_received(envelope, snapshot)
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress observer message callback error", exc_info=True)

    def _handle_error(self, generation: int, exc: Exception) -> None:
        if generation != self._generation:
            return
        LOGGER.warning("WebSocket error: %s", exc)
        failure = TransportError(str(exc) or type(exc).__name__)
        failure.__cause__ = exc
        self._record(failure, f"Connection error occurred: {failure}")
        self._publish_state()

    def _handle_close(self, generation: int, code: int, reason: str, was_clean: bool) -> None:
        if generation != self._generation:
            LOGGER.debug("Ignoring close from superseded transport (code=%s)", code)
            return
        self._inflight = False
        self._transport = None
        self._state = ConnectionState.DISCONNECTED
        if was_clean:
            LOGGER.info("WebSocket closed: code=%s reason=%s", code, reason)
            self._clear_error()
        else:
            LOGGER.warning("WebSocket closed uncleanly: code=%s reason=%s", code, reason)
            failure = UncleanClose(code, reason)
            self._record(failure, str(failure))
        self._scheduler.schedule()
        self._publish_state()

    def _record(self, failure: SessionError, message: str) -> None:
        self._failure = failure
        self._error = message

    def _clear_error(self) -> None:
        self._failure = None
        self._error = None

    def _set_state(self, state: ConnectionState, *, force: bool = False) -> None:
        if state is self._state and not force:
            return
        self._state = state
        self._publish_state()

    def _publish_state(self) -> None:
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer.state_changed(snapshot)
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress observer state callback error", exc_info=True)
