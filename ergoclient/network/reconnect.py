"""Fixed-delay reconnection timer with a single outstanding retry."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)


class ReconnectScheduler:
    """Owns at most one pending retry timer.

    Retries are unbounded and always use the same delay. Cancelling bumps the
    generation so a timer callback that was already queued when ``cancel()``
    ran is ignored.
    """

    def __init__(self, delay: float, on_fire: Callable[[], None]) -> None:
        if delay <= 0:
            raise ValueError("delay must be positive")
        self._delay = float(delay)
        self._on_fire = on_fire
        self._handle: Optional[asyncio.TimerHandle] = None
        self._generation = 0
        self._fired = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def fired(self) -> int:
        """Number of retries that actually ran."""

        return self._fired

    def schedule(self) -> bool:
        """Arm the retry timer; returns False when one is already pending."""

        if self._handle is not None:
            LOGGER.debug("Reconnect already scheduled; ignoring")
            return False
        loop = asyncio.get_running_loop()
        generation = self._generation
        self._handle = loop.call_later(self._delay, self._fire, generation)
        LOGGER.info("Reconnecting in %.1f seconds", self._delay)
        return True

    def cancel(self) -> None:
        self._generation += 1
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
        LOGGER.debug("Pending reconnect cancelled")

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._handle = None
        self._fired += 1
        try:
            self._on_fire()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Reconnect attempt raised")
