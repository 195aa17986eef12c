"""Connection state types shared by the registry and its consumers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from shared.models.envelope import MessageEnvelope


class ConnectionState(enum.Enum):
    """Session-level state; only the registry moves it."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"

    @property
    def is_connecting(self) -> bool:
        return self in {ConnectionState.CONNECTING, ConnectionState.RECONNECTING}


class TransportState(enum.Enum):
    """Lifecycle of a single physical connection."""

    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of the shared session handed to observers."""

    state: ConnectionState
    error: Optional[str]
    last_message: Optional[MessageEnvelope]
    messages: tuple[MessageEnvelope, ...]
    consumer_count: int
    reconnect_pending: bool

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def connecting(self) -> bool:
        return self.state.is_connecting
