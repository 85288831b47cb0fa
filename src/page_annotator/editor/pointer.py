from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from page_annotator.core.geometry import clamp

PointerKind = Literal["move", "up", "cancel"]
PointerHandler = Callable[["PointerEvent"], None]


@dataclass(frozen=True)
class PointerEvent:
    kind: PointerKind
    client_x: float
    client_y: float


@dataclass(frozen=True)
class Viewport:
    """Where the overlay is drawn, in client pixels."""

    left: float
    top: float
    width: float
    height: float

    def to_pct(self, client_x: float, client_y: float) -> tuple[float, float]:
        if self.width <= 0 or self.height <= 0:
            return (0.0, 0.0)
        x = (client_x - self.left) / self.width
        y = (client_y - self.top) / self.height
        return (clamp(x, 0.0, 1.0), clamp(y, 0.0, 1.0))


class PointerEventBus:
    """Window-level pointer events shared by every drag gesture."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[PointerHandler]] = {"move": [], "up": [], "cancel": []}

    def subscribe(self, kind: PointerKind, handler: PointerHandler) -> Callable[[], None]:
        handlers = self._handlers[kind]
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, kind: PointerKind | None = None) -> int:
        if kind is not None:
            return len(self._handlers[kind])
        return sum(len(handlers) for handlers in self._handlers.values())

    def dispatch(self, event: PointerEvent) -> None:
        for handler in list(self._handlers[event.kind]):
            handler(event)

    def move(self, client_x: float, client_y: float) -> None:
        self.dispatch(PointerEvent("move", client_x, client_y))

    def up(self, client_x: float = 0.0, client_y: float = 0.0) -> None:
        self.dispatch(PointerEvent("up", client_x, client_y))

    def cancel(self) -> None:
        self.dispatch(PointerEvent("cancel", 0.0, 0.0))
