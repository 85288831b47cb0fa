from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Trailing-edge debounce on the running event loop.

    Each ``schedule`` cancels the pending call and restarts the delay, so a
    burst of values produces one call with the last value once the burst
    has been quiet for ``delay_s``. Without a running loop the value is only
    held until the next ``flush()``.
    """

    def __init__(
        self,
        callback: Callable[[T], None],
        delay_s: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self.delay_s = delay_s
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._pending: tuple[T] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, value: T) -> None:
        self._cancel_timer()
        self._pending = (value,)
        loop = self._loop or _running_loop()
        if loop is not None:
            self._handle = loop.call_later(self.delay_s, self._fire)

    def flush(self) -> bool:
        """Run the pending call now. Returns whether there was one."""
        self._cancel_timer()
        return self._fire()

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending = None

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> bool:
        self._handle = None
        if self._pending is None:
            return False
        (value,) = self._pending
        self._pending = None
        try:
            self._callback(value)
        except Exception:
            logger.warning("Debounced callback failed", exc_info=True)
        return True


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
