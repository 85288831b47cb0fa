from __future__ import annotations

import asyncio

import pytest

from page_annotator.editor.controller import PageEditorController
from page_annotator.editor.overlay import HOVER_SCALE, TYPE_COLORS, DragSession, OverlayEditor
from page_annotator.editor.pointer import PointerEventBus, Viewport
from page_annotator.schemas.page import BBoxPct
from tests.fakes import FakePageClient
from tests.page_factory import make_bubble_element, make_element, make_page

# page image drawn at half size, offset inside the window
VIEWPORT = Viewport(left=100, top=50, width=500, height=750)


def _client_xy(x_pct: float, y_pct: float) -> tuple[float, float]:
    return VIEWPORT.left + x_pct * VIEWPORT.width, VIEWPORT.top + y_pct * VIEWPORT.height


class _Recorder:
    def __init__(self) -> None:
        self.selected: list[str | None] = []
        self.updates: list[tuple[str, BBoxPct]] = []

    def select(self, element_id: str | None) -> None:
        self.selected.append(element_id)

    def update(self, element_id: str, bbox: BBoxPct) -> None:
        self.updates.append((element_id, bbox))


def _overlay(elements, selected_id: str | None = None) -> tuple[OverlayEditor, PointerEventBus, _Recorder]:
    bus = PointerEventBus()
    recorder = _Recorder()
    overlay = OverlayEditor(bus, recorder.select, recorder.update, VIEWPORT)
    overlay.sync(make_page(elements=elements), selected_id)
    return overlay, bus, recorder


def test_viewport_maps_client_pixels_to_page_fractions():
    assert VIEWPORT.to_pct(100, 50) == (0.0, 0.0)
    assert VIEWPORT.to_pct(350, 425) == (0.5, 0.5)
    assert VIEWPORT.to_pct(0, 2000) == (0.0, 1.0)
    assert Viewport(0, 0, 0, 100).to_pct(10, 10) == (0.0, 0.0)


def test_move_drag_translates_without_resizing():
    overlay, bus, recorder = _overlay([make_element("a", (0.2, 0.3, 0.3, 0.2))], "a")
    session = overlay.press_move_handle("a", *_client_xy(0.25, 0.35))
    assert bus.subscriber_count() == 3

    bus.move(*_client_xy(0.35, 0.30))
    bus.move(*_client_xy(0.95, 0.95))
    bus.up()

    first, last = recorder.updates[0][1], recorder.updates[-1][1]
    assert (first.x, first.y) == pytest.approx((0.3, 0.25))
    assert (last.x, last.y) == pytest.approx((0.7, 0.8))
    assert (last.w, last.h) == (0.3, 0.2)
    assert session.active is False
    assert bus.subscriber_count() == 0
    assert overlay.dragging is False


def test_resize_ne_keeps_opposite_corner_fixed():
    overlay, bus, recorder = _overlay([make_element("a", (0.2, 0.3, 0.3, 0.2))], "a")
    overlay.press_resize_handle("a", "ne", *_client_xy(0.5, 0.3))
    bus.move(*_client_xy(0.6, 0.2))
    bus.up()

    element_id, bbox = recorder.updates[-1]
    assert element_id == "a"
    assert bbox.x == pytest.approx(0.2)
    assert bbox.y == pytest.approx(0.2)
    assert bbox.w == pytest.approx(0.4)
    assert bbox.h == pytest.approx(0.3)


def test_cancel_releases_subscriptions():
    overlay, bus, recorder = _overlay([make_element("a")], "a")
    session = overlay.press_resize_handle("a", "sw", *_client_xy(0.1, 0.3))
    bus.cancel()
    assert session.cancelled is True
    assert bus.subscriber_count() == 0
    bus.move(*_client_xy(0.0, 0.9))
    assert recorder.updates == []


def test_new_press_replaces_running_session():
    overlay, bus, _ = _overlay([make_element("a"), make_element("b", (0.5, 0.5, 0.2, 0.2))], "a")
    first = overlay.press_move_handle("a", 200, 200)
    second = overlay.press_move_handle("b", 200, 200)
    assert first.active is False
    assert overlay.session is second
    assert bus.subscriber_count() == 3


def test_unknown_element_does_not_start_drag():
    overlay, bus, _ = _overlay([make_element("a")])
    assert overlay.press_move_handle("ghost", 10, 10) is None
    assert bus.subscriber_count() == 0


def test_session_context_manager_releases_on_exit():
    bus = PointerEventBus()
    updates = []
    with DragSession(
        bus,
        VIEWPORT,
        "a",
        "move",
        (0.2, 0.2),
        BBoxPct(x=0.1, y=0.1, w=0.2, h=0.2),
        lambda element_id, bbox: updates.append(bbox),
    ) as session:
        bus.move(*_client_xy(0.3, 0.2))
        assert session.last_bbox.x == pytest.approx(0.2)
    assert bus.subscriber_count() == 0
    with pytest.raises(ValueError):
        DragSession(bus, VIEWPORT, "a", "resize", (0, 0), BBoxPct(x=0, y=0, w=0.1, h=0.1), print, corner="n")


def test_removed_element_ends_its_drag():
    overlay, bus, _ = _overlay([make_element("a"), make_element("b")], "a")
    overlay.press_move_handle("a", 200, 200)
    overlay.sync(make_page(elements=[make_element("b")]), "b")
    assert overlay.dragging is False
    assert bus.subscriber_count() == 0


def test_pointer_down_hits_topmost_or_clears_selection():
    overlay, _, recorder = _overlay(
        [make_element("under", (0.1, 0.1, 0.6, 0.6)), make_element("over", (0.3, 0.3, 0.2, 0.2))]
    )
    assert overlay.pointer_down_at(*_client_xy(0.35, 0.35)) == "over"
    assert overlay.pointer_down_at(*_client_xy(0.15, 0.15)) == "under"
    assert overlay.pointer_down_at(*_client_xy(0.9, 0.9)) is None
    assert recorder.selected == ["over", "under", None]


def test_render_view_model():
    overlay, _, _ = _overlay(
        [make_element("a", (0.1, 0.1, 0.2, 0.1), element_type="sfx", reading_order=3), make_bubble_element()],
        "a",
    )
    overlay.pointer_enter("bubble")
    plain, bubble = overlay.render()

    assert plain.color == TYPE_COLORS["sfx"]
    assert plain.label == "sfx #3"
    assert (plain.rect.x, plain.rect.y) == pytest.approx((100.0, 150.0))
    assert [handle.corner for handle in plain.resize_handles] == ["nw", "ne", "sw", "se"]
    assert plain.show_move_handle is True
    assert plain.transform is None
    assert plain.container_path is None

    assert bubble.selected is False
    assert bubble.hovered is True
    assert bubble.show_move_handle is True
    assert bubble.resize_handles == ()
    assert bubble.transform.sx == pytest.approx(HOVER_SCALE)
    assert bubble.container_path.startswith("M 500 100")
    assert bubble.container_transform is not None

    overlay.pointer_leave("bubble")
    assert overlay.render()[1].transform is None


def test_hover_scale_is_suppressed_while_dragging():
    overlay, bus, _ = _overlay([make_element("a")], "a")
    overlay.pointer_enter("a")
    overlay.press_move_handle("a", 200, 200)
    assert overlay.render()[0].transform is None
    bus.up()
    assert overlay.render()[0].transform is not None


def test_attached_overlay_edits_controller_and_detaches_on_close(draft_store):
    async def scenario() -> tuple[PageEditorController, PointerEventBus, OverlayEditor]:
        client = FakePageClient(remote=make_page(elements=[make_element("a", (0.2, 0.3, 0.3, 0.2))]))
        controller = PageEditorController("page-1", draft_store, client, debounce_ms=10, notice_ttl_ms=0)
        bus = PointerEventBus()
        overlay = OverlayEditor.attach(controller, bus, VIEWPORT)
        await controller.mount()
        assert overlay.document is controller.document

        overlay.press_resize_handle("a", "ne", *_client_xy(0.5, 0.3))
        bus.move(*_client_xy(0.6, 0.2))
        assert overlay.document is controller.document
        overlay.press_move_handle("a", *_client_xy(0.3, 0.3))
        await controller.close()
        return controller, bus, overlay

    controller, bus, overlay = asyncio.run(scenario())
    bbox = controller.document.elements[0].geometry.bbox_pct
    assert (bbox.x, bbox.y, bbox.w, bbox.h) == pytest.approx((0.2, 0.2, 0.4, 0.3))
    assert bus.subscriber_count() == 0
    assert overlay.dragging is False
    assert draft_store.load("page-1").elements[0].geometry.bbox_pct == bbox
