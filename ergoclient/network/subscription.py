"""Per-consumer handle onto the shared live session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from itertools import count
from typing import TYPE_CHECKING, Any, Optional

from shared.models.envelope import MessageEnvelope

from ergoclient.network.errors import SubscriptionReleased
from ergoclient.network.state import ConnectionState, SessionSnapshot

if TYPE_CHECKING:
    from ergoclient.network.registry import SessionRegistry

LOGGER = logging.getLogger(__name__)

_subscription_ids = count(1)

MessageCallback = Callable[[MessageEnvelope], None]
StateCallback = Callable[[SessionSnapshot], None]


class ConsumerSubscription:
    """Mirrors the shared session state for one consumer.

    Releasing a subscription only stops observation; the shared connection is
    closed solely by an explicit :meth:`disconnect`.
    """

    def __init__(self, registry: "SessionRegistry") -> None:
        self.id = next(_subscription_ids)
        self._registry = registry
        self._released = False
        self._message_callbacks: list[MessageCallback] = []
        self._state_callbacks: list[StateCallback] = []
        self._streams: list[asyncio.Queue[Optional[MessageEnvelope]]] = []
        self._connected_event = asyncio.Event()
        registry.attach(self)
        self._snapshot = registry.snapshot()
        self._refresh(self._snapshot)
        LOGGER.debug("Subscription #%s created", self.id)

    def __repr__(self) -> str:
        return f"<ConsumerSubscription #{self.id} state={self.state.value} released={self._released}>"

    def __enter__(self) -> "ConsumerSubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    # ---- mirrors ----
    @property
    def released(self) -> bool:
        return self._released

    @property
    def state(self) -> ConnectionState:
        return self._snapshot.state

    @property
    def connected(self) -> bool:
        return not self._released and self._snapshot.connected

    @property
    def connecting(self) -> bool:
        return not self._released and self._snapshot.connecting

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def last_message(self) -> Optional[MessageEnvelope]:
        return self._snapshot.last_message

    @property
    def messages(self) -> tuple[MessageEnvelope, ...]:
        return self._snapshot.messages

    # ---- passthrough ----
    def connect(self, url: Optional[str] = None) -> None:
        self._ensure_active()
        LOGGER.debug("Subscription #%s connect()", self.id)
        self._registry.connect(url)

    def disconnect(self) -> None:
        """Tear down the shared connection for every consumer."""

        self._ensure_active()
        LOGGER.debug("Subscription #%s disconnect()", self.id)
        self._registry.disconnect()

    def send(self, message: MessageEnvelope | Mapping[str, Any]) -> None:
        self._ensure_active()
        self._registry.send(message)

    def clear_messages(self) -> None:
        self._ensure_active()
        self._registry.clear_messages()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._registry.detach(self)
        self._connected_event.clear()
        for queue in self._streams:
            queue.put_nowait(None)
        self._message_callbacks.clear()
        self._state_callbacks.clear()
        LOGGER.debug("Subscription #%s released", self.id)

    # ---- observation ----
    def on_message(self, callback: MessageCallback) -> None:
        self._message_callbacks.append(callback)

    def on_state_change(self, callback: StateCallback) -> None:
        self._state_callbacks.append(callback)

    async def wait_connected(self, timeout: float | None = None) -> None:
        """Block until the shared session is connected (``TimeoutError`` on timeout)."""

        self._ensure_active()
        await asyncio.wait_for(self._connected_event.wait(), timeout)

    async def stream(self) -> AsyncIterator[MessageEnvelope]:
        """Yield envelopes received from now on until the subscription is released."""

        self._ensure_active()
        queue: asyncio.Queue[Optional[MessageEnvelope]] = asyncio.Queue()
        self._streams.append(queue)
        try:
            while True:
                envelope = await queue.get()
                if envelope is None:
                    break
                yield envelope
        finally:
            self._streams.remove(queue)

    # ---- SessionObserver ----
    def state_changed(self, snapshot: SessionSnapshot) -> None:
        self._refresh(snapshot)
        for callback in list(self._state_callbacks):
            callback(snapshot)

    def message_received(self, envelope: MessageEnvelope, snapshot: SessionSnapshot) -> None:
        self._refresh(snapshot)
        for queue in self._streams:
            queue.put_nowait(envelope)
        for callback in list(self._message_callbacks):
            callback(envelope)

    def _refresh(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        if snapshot.connected:
            self._connected_event.set()
        else:
            self._connected_event.clear()

    def _ensure_active(self) -> None:
        if self._released:
            raise SubscriptionReleased(f"Subscription #{self.id} has been released")
