"""Wiring of settings, endpoint and transport into the shared session registry."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, Optional, Type

from ergoclient.config import ClientSettings, get_settings
from ergoclient.network.endpoint import EndpointProvider, TokenSupplier
from ergoclient.network.registry import SessionRegistry
from ergoclient.network.subscription import ConsumerSubscription
from ergoclient.network.transport.base import BaseTransport
from ergoclient.network.transport.dummy import DummyTransport
from ergoclient.network.transport.websocket import WebSocketTransport

LOGGER = logging.getLogger(__name__)


def build_registry(
    settings: Optional[ClientSettings] = None,
    *,
    transport_factory: Optional[Callable[[ClientSettings], BaseTransport]] = None,
    token_supplier: Optional[TokenSupplier] = None,
) -> SessionRegistry:
    """Construct a session registry from settings (no connection is opened)."""

    settings = settings or get_settings()
    if transport_factory is None:
        resolved_cls: Type[BaseTransport]
        resolved_cls = WebSocketTransport if settings.transport == "websocket" else DummyTransport
        LOGGER.debug("Initialising live session via %s", resolved_cls.__name__)
        transport_factory = resolved_cls
    return SessionRegistry(
        settings=settings,
        transport_factory=transport_factory,
        endpoint=EndpointProvider(settings, token_supplier),
    )


@lru_cache()
def get_registry() -> SessionRegistry:
    """Return the process-wide session registry shared by all consumers."""

    return build_registry()


def attach() -> ConsumerSubscription:
    """Attach a new consumer to the process-wide session."""

    return get_registry().subscribe()
