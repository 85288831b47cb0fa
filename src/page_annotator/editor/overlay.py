"""Pointer-driven geometry editing over the page image.

Boxes are kept in normalized page space; the overlay only converts to
image pixels for drawing and from client pixels for pointer input. Every
drag frame goes back to the controller, which normalizes before storing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal

from page_annotator.core.geometry import CORNERS, Corner, PixelRect, bbox_to_px, move_bbox, resize_bbox
from page_annotator.core.hit_test import topmost_at
from page_annotator.core.shapes import Affine, container_matrix, scale_about_center, shape_of
from page_annotator.editor.pointer import PointerEvent, PointerEventBus, Viewport
from page_annotator.schemas.page import BBoxPct, PageDocument

if TYPE_CHECKING:
    from page_annotator.editor.controller import PageEditorController

logger = logging.getLogger(__name__)

TYPE_COLORS = {
    "dialogue": "#2563eb",
    "narration": "#16a34a",
    "free_text": "#f59e0b",
    "sfx": "#7c3aed",
}
DEFAULT_COLOR = "#0f172a"
HOVER_SCALE = 1.02

SelectCallback = Callable[[str | None], None]
BBoxCallback = Callable[[str, BBoxPct], None]


@dataclass(frozen=True)
class ResizeHandle:
    corner: Corner
    x: float
    y: float


@dataclass(frozen=True)
class OverlayItem:
    element_id: str
    type: str
    color: str
    rect: PixelRect
    label: str
    text: str
    selected: bool
    hovered: bool
    transform: Affine | None
    container_path: str | None
    container_transform: Affine | None
    show_move_handle: bool
    resize_handles: tuple[ResizeHandle, ...]


class DragSession:
    """One move or resize gesture.

    Owns its pointer subscriptions from creation until pointer-up, pointer
    cancel, ``release()`` or context exit, whichever comes first.
    """

    def __init__(
        self,
        bus: PointerEventBus,
        viewport: Viewport,
        element_id: str,
        kind: Literal["move", "resize"],
        start_pointer: tuple[float, float],
        start_bbox: BBoxPct,
        on_update: BBoxCallback,
        corner: Corner | None = None,
        on_end: Callable[["DragSession"], None] | None = None,
    ) -> None:
        if kind == "resize" and corner not in CORNERS:
            raise ValueError(f"Unknown resize handle: {corner}")
        self.viewport = viewport
        self.element_id = element_id
        self.kind = kind
        self.corner = corner
        self.start_pointer = start_pointer
        self.start_bbox = start_bbox
        self.last_bbox: BBoxPct | None = None
        self.cancelled = False
        self._on_update = on_update
        self._on_end = on_end
        self._unsubscribers = [
            bus.subscribe("move", self._handle_move),
            bus.subscribe("up", self._handle_up),
            bus.subscribe("cancel", self._handle_cancel),
        ]

    @property
    def active(self) -> bool:
        return bool(self._unsubscribers)

    def bbox_for(self, client_x: float, client_y: float) -> BBoxPct:
        px, py = self.viewport.to_pct(client_x, client_y)
        dx = px - self.start_pointer[0]
        dy = py - self.start_pointer[1]
        if self.kind == "move":
            return move_bbox(self.start_bbox, dx, dy)
        return resize_bbox(self.start_bbox, self.corner, dx, dy)

    def _handle_move(self, event: PointerEvent) -> None:
        if not self.active:
            return
        self.last_bbox = self.bbox_for(event.client_x, event.client_y)
        self._on_update(self.element_id, self.last_bbox)

    def _handle_up(self, _: PointerEvent) -> None:
        self.release()

    def _handle_cancel(self, _: PointerEvent) -> None:
        self.cancelled = True
        self.release()

    def release(self) -> None:
        if not self._unsubscribers:
            return
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._on_end is not None:
            self._on_end(self)

    def __enter__(self) -> "DragSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class OverlayEditor:
    def __init__(
        self,
        bus: PointerEventBus,
        on_select: SelectCallback,
        on_bbox_change: BBoxCallback,
        viewport: Viewport | None = None,
    ) -> None:
        self.bus = bus
        self.viewport = viewport or Viewport(0.0, 0.0, 1.0, 1.0)
        self.document: PageDocument | None = None
        self.selected_id: str | None = None
        self.hovered_id: str | None = None
        self.session: DragSession | None = None
        self._on_select = on_select
        self._on_bbox_change = on_bbox_change
        self._detach: Callable[[], None] | None = None

    @classmethod
    def attach(
        cls,
        controller: "PageEditorController",
        bus: PointerEventBus,
        viewport: Viewport | None = None,
    ) -> "OverlayEditor":
        overlay = cls(bus, controller.select, controller.update_bbox, viewport)

        def sync() -> None:
            overlay.sync(controller.document, controller.selected_id)

        sync()
        overlay._detach = controller.subscribe(sync)
        controller.add_teardown(overlay.close)
        return overlay

    # -------- Inputs from the controller --------
    def sync(self, document: PageDocument | None, selected_id: str | None) -> None:
        self.document = document
        self.selected_id = selected_id
        if document is None or (self.hovered_id is not None and document.element(self.hovered_id) is None):
            self.hovered_id = None
        if self.session is not None and (document is None or document.element(self.session.element_id) is None):
            self.session.release()

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport

    # -------- Hover / selection --------
    def pointer_enter(self, element_id: str) -> None:
        self.hovered_id = element_id

    def pointer_leave(self, element_id: str) -> None:
        if self.hovered_id == element_id:
            self.hovered_id = None

    def pointer_down_background(self) -> None:
        self._on_select(None)

    def pointer_down_element(self, element_id: str) -> None:
        self._on_select(element_id)

    def element_at(self, client_x: float, client_y: float) -> str | None:
        if self.document is None:
            return None
        x, y = self.viewport.to_pct(client_x, client_y)
        return topmost_at(self.document.elements, x, y)

    def pointer_down_at(self, client_x: float, client_y: float) -> str | None:
        hit = self.element_at(client_x, client_y)
        if hit is None:
            self.pointer_down_background()
        else:
            self.pointer_down_element(hit)
        return hit

    # -------- Drag gestures --------
    def press_move_handle(self, element_id: str, client_x: float, client_y: float) -> DragSession | None:
        return self._start_session(element_id, "move", None, client_x, client_y)

    def press_resize_handle(
        self,
        element_id: str,
        corner: Corner,
        client_x: float,
        client_y: float,
    ) -> DragSession | None:
        return self._start_session(element_id, "resize", corner, client_x, client_y)

    def _start_session(
        self,
        element_id: str,
        kind: Literal["move", "resize"],
        corner: Corner | None,
        client_x: float,
        client_y: float,
    ) -> DragSession | None:
        element = self.document.element(element_id) if self.document is not None else None
        if element is None:
            return None
        if self.session is not None:
            self.session.release()
        self.session = DragSession(
            bus=self.bus,
            viewport=self.viewport,
            element_id=element_id,
            kind=kind,
            start_pointer=self.viewport.to_pct(client_x, client_y),
            start_bbox=element.geometry.bbox_pct,
            on_update=self._on_bbox_change,
            corner=corner,
            on_end=self._session_ended,
        )
        return self.session

    def _session_ended(self, session: DragSession) -> None:
        if self.session is session:
            self.session = None
        logger.debug(
            "Drag ended element_id=%s kind=%s cancelled=%s",
            session.element_id,
            session.kind,
            session.cancelled,
        )

    @property
    def dragging(self) -> bool:
        return self.session is not None

    # -------- Rendering --------
    def render(self) -> list[OverlayItem]:
        if self.document is None:
            return []
        width = self.document.image.natural_width
        height = self.document.image.natural_height
        items: list[OverlayItem] = []
        for element in self.document.elements:
            rect = bbox_to_px(element.geometry.bbox_pct, width, height)
            selected = element.id == self.selected_id
            hovered = element.id == self.hovered_id
            label = element.type
            if element.reading_order is not None:
                label = f"{label} #{element.reading_order}"
            shape = shape_of(element)
            handles: tuple[ResizeHandle, ...] = ()
            if selected:
                handles = (
                    ResizeHandle("nw", rect.x, rect.y),
                    ResizeHandle("ne", rect.x + rect.w, rect.y),
                    ResizeHandle("sw", rect.x, rect.y + rect.h),
                    ResizeHandle("se", rect.x + rect.w, rect.y + rect.h),
                )
            items.append(
                OverlayItem(
                    element_id=element.id,
                    type=element.type,
                    color=TYPE_COLORS.get(element.type, DEFAULT_COLOR),
                    rect=rect,
                    label=label,
                    text=element.text.raw,
                    selected=selected,
                    hovered=hovered,
                    transform=scale_about_center(rect, HOVER_SCALE) if hovered and not self.dragging else None,
                    container_path=element.container.svg_path if element.container is not None else None,
                    container_transform=container_matrix(shape, width, height),
                    show_move_handle=selected or hovered,
                    resize_handles=handles,
                )
            )
        return items

    # -------- Teardown --------
    def close(self) -> None:
        if self.session is not None:
            self.session.release()
        if self._detach is not None:
            self._detach()
            self._detach = None
