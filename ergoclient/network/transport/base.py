"""Transport abstractions for the live session connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class TransportListener(Protocol):
    """Receiver of one transport's lifecycle events, in channel order."""

    def on_open(self) -> None:
        ...

    def on_message(self, raw: str | bytes) -> None:
        ...

    def on_error(self, exc: Exception) -> None:
        ...

    def on_close(self, code: int, reason: str, was_clean: bool) -> None:
        ...


class BaseTransport(ABC):
    """Wraps exactly one physical connection attempt.

    ``open`` returns immediately; completion and every later event are
    reported on the listener. A handle is never reopened once closed.
    """

    @property
    @abstractmethod
    def state(self):
        """Current :class:`~ergoclient.network.state.TransportState`."""
        ...

    @abstractmethod
    def open(self, url: str, listener: TransportListener) -> None:
        ...

    @abstractmethod
    def send(self, payload: str) -> None:
        """Queue ``payload`` for writing; raise ``SendError`` unless open."""
        ...

    @abstractmethod
    def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the channel; closing twice is a no-op."""
        ...

    async def wait_closed(self) -> None:
        return None
