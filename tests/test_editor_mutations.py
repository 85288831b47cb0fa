from __future__ import annotations

import asyncio
import json

import pytest

from page_annotator.editor.controller import PageEditorController
from page_annotator.editor.elements import DEFAULT_BBOX, neighbour_after_delete
from page_annotator.schemas.page import BBoxPct, PageDocument
from page_annotator.services.draft_store import LocalDraftStore
from tests.fakes import FakePageClient
from tests.page_factory import make_element, make_page


class _CountingDraftStore(LocalDraftStore):
    def __init__(self, inner: LocalDraftStore) -> None:
        super().__init__(inner.storage, inner.namespace)
        self.writes: list[PageDocument] = []

    def save(self, page_id: str, document: PageDocument) -> None:
        self.writes.append(document)
        super().save(page_id, document)


def _mounted(draft_store, elements, debounce_ms: int = 10) -> PageEditorController:
    client = FakePageClient(remote=make_page(elements=elements))
    controller = PageEditorController("page-1", draft_store, client, debounce_ms=debounce_ms, notice_ttl_ms=0)
    return controller


def test_neighbour_after_delete_prefers_next_then_previous():
    elements = [make_element("a"), make_element("b"), make_element("c")]
    assert neighbour_after_delete(elements, "a") == "b"
    assert neighbour_after_delete(elements, "c") == "b"
    assert neighbour_after_delete(elements[:1], "a") is None
    assert neighbour_after_delete(elements, "zzz") is None


def test_delete_selects_neighbour(draft_store):
    async def scenario() -> list[str | None]:
        controller = _mounted(draft_store, [make_element("a"), make_element("b"), make_element("c")])
        await controller.mount()
        picks = []
        controller.select("b")
        picks.append(controller.delete_selected())
        controller.select("c")
        picks.append(controller.delete_selected())
        picks.append(controller.delete_selected())
        picks.append(controller.delete_selected())
        assert controller.document.elements == []
        return picks

    assert asyncio.run(scenario()) == ["c", "a", None, None]


def test_add_element_selects_it_with_type_defaults(draft_store):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")])
        await controller.mount()
        element = controller.add_element("sfx")
        assert controller.selected_id == element.id
        with pytest.raises(ValueError):
            controller.add_element("caption")
        return controller

    controller = asyncio.run(scenario())
    added = controller.document.elements[-1]
    assert added.type == "sfx"
    assert added.geometry.bbox_pct == DEFAULT_BBOX["sfx"]
    assert added.needs_review is True
    assert added.confidence == 0.5
    assert added.text.raw == ""
    assert len(controller.document.elements) == 2


def test_mutations_without_document_are_ignored(draft_store):
    async def scenario() -> PageEditorController:
        client = FakePageClient(remote=None)
        controller = PageEditorController("page-1", draft_store, client, debounce_ms=10, notice_ttl_ms=0)
        await controller.mount()
        assert controller.add_element("dialogue") is None
        assert controller.delete_selected() is None
        controller.update_page_meta(title="x")
        controller.select("a")
        return controller

    controller = asyncio.run(scenario())
    assert controller.document is None
    assert controller.selected_id is None


def test_select_unknown_id_keeps_selection(draft_store):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a"), make_element("b")])
        await controller.mount()
        controller.select("ghost")
        return controller

    assert asyncio.run(scenario()).selected_id == "a"


def test_update_bbox_stores_normalized_box(draft_store):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")])
        await controller.mount()
        controller.update_bbox("a", BBoxPct(x=0.9, y=-0.3, w=0.5, h=0.0))
        return controller

    bbox = asyncio.run(scenario()).document.elements[0].geometry.bbox_pct
    assert bbox.x == pytest.approx(0.5)
    assert bbox.y == 0.0
    assert bbox.w == 0.5
    assert bbox.h == 0.01


def test_rapid_edits_write_one_draft_with_last_state(draft_store):
    counting = _CountingDraftStore(draft_store)

    async def scenario() -> PageEditorController:
        controller = _mounted(counting, [make_element("a")], debounce_ms=30)
        await controller.mount()
        for step in range(10):
            controller.update_bbox("a", BBoxPct(x=0.01 * step, y=0.1, w=0.2, h=0.2))
        await asyncio.sleep(0.1)
        return controller

    controller = asyncio.run(scenario())
    # the initial server load and the ten edits fall inside one quiet window
    assert len(counting.writes) == 1
    assert counting.writes[0] == controller.document
    assert counting.writes[0].elements[0].geometry.bbox_pct.x == pytest.approx(0.09)


def test_close_flushes_pending_draft(draft_store):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")], debounce_ms=10_000)
        await controller.mount()
        controller.update_page_meta(keywords=["rain", "night"])
        await controller.close()
        return controller

    asyncio.run(scenario())
    assert draft_store.load("page-1").keywords == ["rain", "night"]


def test_update_page_meta_only_touches_given_fields(draft_store):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")])
        await controller.mount()
        controller.update_page_meta(description="Night scene")
        return controller

    document = asyncio.run(scenario()).document
    assert document.description == "Night scene"
    assert document.title is None
    assert document.keywords == ["action"]


def test_export_json_and_download(draft_store, tmp_path):
    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")])
        assert controller.export_json() is None
        await controller.mount()
        return controller

    controller = asyncio.run(scenario())
    payload = json.loads(controller.export_json())
    assert payload["pageId"] == "page-1"
    path = controller.download_json(tmp_path)
    assert path.name == "analyzer-page-page-1.json"
    assert json.loads(path.read_text(encoding="utf-8")) == payload


def test_copy_json_hands_export_to_clipboard_writer(draft_store):
    copied: list[str] = []

    async def scenario() -> PageEditorController:
        controller = _mounted(draft_store, [make_element("a")])
        assert controller.copy_json(copied.append) is False
        await controller.mount()
        assert controller.copy_json(copied.append) is True
        return controller

    controller = asyncio.run(scenario())
    assert copied == [controller.export_json()]
