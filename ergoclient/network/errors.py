"""Error taxonomy for the live session client."""

from __future__ import annotations

from shared.protocol.codec import DecodeFailure


class SessionError(RuntimeError):
    """Base class for session-level failures."""


class ConnectFailure(SessionError):
    """Raised/recorded when a transport could not be constructed or opened."""


class InvalidEndpoint(ConnectFailure, ValueError):
    """Raised when the caller supplies a malformed connection target."""


class TransportError(SessionError):
    """Runtime error reported by an open or opening transport."""


class UncleanClose(TransportError):
    """Transport closed without a completed closing handshake."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"Connection lost (code: {code})")
        self.code = code
        self.reason = reason


class SendFailure(SessionError):
    """Base class for failed sends."""


class NotConnected(SendFailure):
    """Raised when sending while the session is not connected."""


class SendError(SendFailure):
    """Raised by a transport whose channel is not open at send time."""


class SubscriptionReleased(SessionError):
    """Raised when a released subscription is used."""


__all__ = [
    "SessionError",
    "ConnectFailure",
    "InvalidEndpoint",
    "TransportError",
    "UncleanClose",
    "SendFailure",
    "NotConnected",
    "SendError",
    "DecodeFailure",
    "SubscriptionReleased",
]
