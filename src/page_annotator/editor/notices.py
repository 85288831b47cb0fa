from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Literal

NoticeKind = Literal["info", "success", "neutral", "error"]


@dataclass(frozen=True)
class Notice:
    message: str
    kind: NoticeKind = "info"


class NoticeBoard:
    """Single short-lived status line that dismisses itself after ``ttl_s``."""

    def __init__(self, ttl_s: float, on_change: Callable[[], None] | None = None) -> None:
        self.ttl_s = ttl_s
        self.current: Notice | None = None
        self._on_change = on_change
        self._handle: asyncio.TimerHandle | None = None

    def post(self, message: str, kind: NoticeKind = "info") -> Notice:
        self._cancel_timer()
        self.current = Notice(message=message, kind=kind)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None and self.ttl_s > 0:
            self._handle = loop.call_later(self.ttl_s, self._expire)
        self._changed()
        return self.current

    def clear(self) -> None:
        self._cancel_timer()
        if self.current is not None:
            self.current = None
            self._changed()

    def close(self) -> None:
        self._cancel_timer()

    def _expire(self) -> None:
        self._handle = None
        self.current = None
        self._changed()

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
