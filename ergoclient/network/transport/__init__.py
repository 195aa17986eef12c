"""Transport implementations for the live session."""

from .base import BaseTransport, TransportListener
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "TransportListener", "DummyTransport", "WebSocketTransport"]
