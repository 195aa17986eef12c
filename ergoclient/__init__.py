"""Shared, reconnecting live-session client for the ergometer.live server."""

from shared.models.envelope import MessageEnvelope

from ergoclient.bootstrap import attach, build_registry, get_registry
from ergoclient.config import ClientSettings, get_settings
from ergoclient.network import (
    ConnectionState,
    ConsumerSubscription,
    NotConnected,
    SessionError,
    SessionRegistry,
)

__all__ = [
    "MessageEnvelope",
    "attach",
    "build_registry",
    "get_registry",
    "ClientSettings",
    "get_settings",
    "ConnectionState",
    "ConsumerSubscription",
    "NotConnected",
    "SessionError",
    "SessionRegistry",
]

__version__ = "0.1.0"
