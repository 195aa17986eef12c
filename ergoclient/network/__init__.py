"""Network stack (transport/registry/subscriptions) for the live session."""

from ergoclient.network.buffer import MessageBuffer
from ergoclient.network.endpoint import EndpointProvider, build_ws_url, url_from_origin, validate_ws_url
from ergoclient.network.errors import (
    ConnectFailure,
    DecodeFailure,
    InvalidEndpoint,
    NotConnected,
    SendError,
    SendFailure,
    SessionError,
    SubscriptionReleased,
    TransportError,
    UncleanClose,
)
from ergoclient.network.reconnect import ReconnectScheduler
from ergoclient.network.registry import SessionObserver, SessionRegistry
from ergoclient.network.state import ConnectionState, SessionSnapshot, TransportState
from ergoclient.network.subscription import ConsumerSubscription
from ergoclient.network.transport import BaseTransport, DummyTransport, TransportListener, WebSocketTransport

__all__ = [
    "MessageBuffer",
    "EndpointProvider",
    "build_ws_url",
    "url_from_origin",
    "validate_ws_url",
    "ConnectFailure",
    "DecodeFailure",
    "InvalidEndpoint",
    "NotConnected",
    "SendError",
    "SendFailure",
    "SessionError",
    "SubscriptionReleased",
    "TransportError",
    "UncleanClose",
    "ReconnectScheduler",
    "SessionObserver",
    "SessionRegistry",
    "ConnectionState",
    "SessionSnapshot",
    "TransportState",
    "ConsumerSubscription",
    "BaseTransport",
    "DummyTransport",
    "TransportListener",
    "WebSocketTransport",
]
