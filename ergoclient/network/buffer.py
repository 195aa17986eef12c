"""Bounded history of recently received envelopes."""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional

from shared.models.envelope import MessageEnvelope

DEFAULT_CAPACITY = 50


class MessageBuffer:
    """Append-only ring; the oldest envelope is evicted once capacity is reached."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._items: Deque[MessageEnvelope] = deque(maxlen=capacity)
        self._latest: Optional[MessageEnvelope] = None

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def push(self, envelope: MessageEnvelope) -> None:
        self._items.append(envelope)
        self._latest = envelope

    def latest(self) -> Optional[MessageEnvelope]:
        return self._latest

    def all(self) -> tuple[MessageEnvelope, ...]:
        """Return a snapshot in insertion order."""

        return tuple(self._items)

    def clear(self) -> None:
        self._items.clear()
        self._latest = None

    def __len__(self) -> int:
        return len(self._items)
