"""Hydration and sync for one page being edited.

The controller is the only writer of the in-memory document and the only
user of the local draft store and the remote page client. Views (overlay,
inspector) read from it and report changes through its mutation methods.

Load precedence on ``mount()``:

1. a local draft wins; the server copy is fetched in the background and
   only its image (plus page number, and title/description when the draft
   has none) is merged in, since image URLs expire but edits do not;
2. otherwise the server copy is fetched exactly once;
3. otherwise the editor stays empty until ``analyze()``.

Draft reads at mount run in a worker thread. Draft writes stay synchronous
so a flush (failed save, ``close()``) is on disk when the call returns.
Clipboard access belongs to the view: ``copy_json()`` hands it the text.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path
from typing import Callable, Protocol

from page_annotator.core.errors import RemoteError, describe_error
from page_annotator.editor.elements import (
    ensure_element_type,
    neighbour_after_delete,
    new_element,
    with_bbox,
)
from page_annotator.editor.notices import Notice, NoticeBoard
from page_annotator.schemas.page import BBoxPct, PageDocument, PageElement
from page_annotator.services.debounce import Debouncer
from page_annotator.services.draft_store import LocalDraftStore
from page_annotator.services.page_export import export_json, write_export
from page_annotator.settings import get_settings

logger = logging.getLogger(__name__)

DocumentUpdater = Callable[[PageDocument], PageDocument]
ElementUpdater = Callable[[PageElement], PageElement]

_UNSET = object()


class PageClient(Protocol):
    async def analyze(self, page_id: str) -> PageDocument:
        ...

    async def fetch(self, page_id: str) -> PageDocument:
        ...

    async def save(self, page_id: str, document: PageDocument) -> PageDocument:
        ...


class HydrationState(str, enum.Enum):
    UNLOADED = "unloaded"
    LOCAL_LOADING = "local_loading"
    LOCAL_HYDRATED = "local_hydrated"
    REMOTE_HYDRATED = "remote_hydrated"
    EMPTY = "empty"


class PageEditorController:
    def __init__(
        self,
        page_id: str,
        draft_store: LocalDraftStore,
        client: PageClient,
        debounce_ms: int | None = None,
        notice_ttl_ms: int | None = None,
    ) -> None:
        settings = get_settings()
        if debounce_ms is None:
            debounce_ms = settings.ANNOTATOR_DRAFT_DEBOUNCE_MS
        if notice_ttl_ms is None:
            notice_ttl_ms = settings.ANNOTATOR_NOTICE_TTL_MS

        self.page_id = page_id
        self.draft_store = draft_store
        self.client = client

        self.state = HydrationState.UNLOADED
        self.document: PageDocument | None = None
        self.selected_id: str | None = None
        self.analyzing = False
        self.pulling = False
        self.saving = False
        self.analyze_error: str | None = None
        self.server_error: str | None = None

        self._listeners: list[Callable[[], None]] = []
        self._teardown_hooks: list[Callable[[], None]] = []
        self._remote_load_attempted = False
        self._background: set[asyncio.Task] = set()
        self._autosave: Debouncer[PageDocument] = Debouncer(self._write_draft, debounce_ms / 1000.0)
        self.notices = NoticeBoard(notice_ttl_ms / 1000.0, on_change=self._notify)

    # -------- Observation --------
    @property
    def notice(self) -> Notice | None:
        return self.notices.current

    @property
    def selected_element(self) -> PageElement | None:
        if self.document is None:
            return None
        return self.document.element(self.selected_id)

    @property
    def has_document(self) -> bool:
        return self.document is not None

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_teardown(self, hook: Callable[[], None]) -> None:
        self._teardown_hooks.append(hook)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -------- Hydration --------
    async def mount(self) -> HydrationState:
        if self.document is not None:
            return self.state
        self.state = HydrationState.LOCAL_LOADING
        self._notify()

        draft = await asyncio.to_thread(self.draft_store.load, self.page_id)
        if draft is not None:
            self._replace_document(draft, persist=False)
            self.state = HydrationState.LOCAL_HYDRATED
            logger.info("Hydrated from local draft page_id=%s elements=%s", self.page_id, len(draft.elements))
            self.notices.post("Loaded local draft", "info")
            self._spawn(self._refresh_image())
            return self.state

        if self._remote_load_attempted:
            self.state = HydrationState.EMPTY
            self._notify()
            return self.state
        self._remote_load_attempted = True

        try:
            fresh = await self.client.fetch(self.page_id)
        except RemoteError as exc:
            self.state = HydrationState.EMPTY
            logger.info("No server page page_id=%s reason=%s", self.page_id, exc.code)
            self.notices.post("No server page found, upload a chapter first", "neutral")
            return self.state

        self._replace_document(fresh, persist=True)
        self.state = HydrationState.REMOTE_HYDRATED
        logger.info("Hydrated from server page_id=%s elements=%s", self.page_id, len(fresh.elements))
        self.notices.post("Loaded from server", "success")
        return self.state

    async def _refresh_image(self) -> None:
        try:
            fresh = await self.client.fetch(self.page_id)
        except RemoteError as exc:
            logger.debug("Background image refresh failed page_id=%s error=%s", self.page_id, exc.code)
            return

        def merge(prev: PageDocument) -> PageDocument:
            return prev.model_copy(
                update={
                    "page_number": fresh.page_number,
                    "image": fresh.image,
                    "title": prev.title if prev.title is not None else fresh.title,
                    "description": prev.description if prev.description is not None else fresh.description,
                }
            )

        self.patch_document(merge)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_idle(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -------- Mutation primitives --------
    def patch_document(self, updater: DocumentUpdater) -> None:
        if self.document is None:
            return
        self.document = updater(self.document)
        self._autosave.schedule(self.document)
        self._notify()

    def patch_element(self, element_id: str, updater: ElementUpdater) -> None:
        def apply(document: PageDocument) -> PageDocument:
            elements = [updater(el) if el.id == element_id else el for el in document.elements]
            return document.model_copy(update={"elements": elements})

        self.patch_document(apply)

    def _replace_document(self, document: PageDocument | None, persist: bool) -> None:
        self.document = document
        self.selected_id = document.first_element_id() if document is not None else None
        if document is not None and persist:
            self._autosave.schedule(document)
        self._notify()

    def _write_draft(self, document: PageDocument) -> None:
        self.draft_store.save(self.page_id, document)

    # -------- Element editing --------
    def select(self, element_id: str | None) -> None:
        if element_id is not None and (self.document is None or self.document.element(element_id) is None):
            return
        if element_id == self.selected_id:
            return
        self.selected_id = element_id
        self._notify()

    def update_bbox(self, element_id: str, bbox: BBoxPct) -> None:
        self.patch_element(element_id, lambda el: with_bbox(el, bbox))

    def add_element(self, element_type: str) -> PageElement | None:
        if self.document is None:
            return None
        element = new_element(ensure_element_type(element_type))
        self.patch_document(lambda doc: doc.model_copy(update={"elements": [*doc.elements, element]}))
        self.select(element.id)
        return element

    def delete_selected(self) -> str | None:
        if self.document is None or self.selected_id is None:
            return None
        removed = self.selected_id
        next_id = neighbour_after_delete(self.document.elements, removed)
        self.patch_document(
            lambda doc: doc.model_copy(update={"elements": [el for el in doc.elements if el.id != removed]})
        )
        self.selected_id = next_id
        self._notify()
        return next_id

    def update_page_meta(self, title=_UNSET, description=_UNSET, keywords=_UNSET) -> None:
        update: dict[str, object] = {}
        if title is not _UNSET:
            update["title"] = title
        if description is not _UNSET:
            update["description"] = description
        if keywords is not _UNSET:
            update["keywords"] = list(keywords)
        if update:
            self.patch_document(lambda doc: doc.model_copy(update=update))

    # -------- Remote actions --------
    async def analyze(self) -> bool:
        if self.analyzing:
            return False
        self.analyzing = True
        self.analyze_error = None
        self._notify()
        try:
            result = await self.client.analyze(self.page_id)
        except RemoteError as exc:
            self.analyze_error = describe_error(exc)
            logger.warning("Analyze failed page_id=%s code=%s", self.page_id, exc.code)
            self.notices.clear()
            return False
        finally:
            self.analyzing = False
            self._notify()
        self._replace_document(result, persist=True)
        self.state = HydrationState.REMOTE_HYDRATED
        logger.info("Analyzed page_id=%s elements=%s", self.page_id, len(result.elements))
        self.notices.post("Analyzed via backend", "success")
        return True

    async def pull(self) -> bool:
        if self.pulling:
            return False
        self.pulling = True
        self.server_error = None
        self._notify()
        try:
            result = await self.client.fetch(self.page_id)
        except RemoteError as exc:
            summary = describe_error(exc)
            self.server_error = f"Pull: {summary}"
            logger.warning("Pull failed page_id=%s code=%s", self.page_id, exc.code)
            self.notices.post(f"Pull failed: {summary}", "error")
            return False
        finally:
            self.pulling = False
            self._notify()
        self._replace_document(result, persist=True)
        self.state = HydrationState.REMOTE_HYDRATED
        logger.info("Pulled page_id=%s elements=%s", self.page_id, len(result.elements))
        self.notices.post("Pulled latest from server", "success")
        return True

    async def save(self) -> bool:
        if self.document is None or self.saving:
            return False
        self.saving = True
        self.server_error = None
        self._notify()
        try:
            await self.client.save(self.page_id, self.document)
        except RemoteError as exc:
            summary = describe_error(exc)
            self.server_error = f"Save: {summary}"
            logger.warning("Save failed, keeping local draft page_id=%s code=%s", self.page_id, exc.code)
            self._autosave.flush()
            self.notices.post(f"Save failed (kept local): {summary}", "error")
            return False
        finally:
            self.saving = False
            self._notify()
        logger.info("Saved page_id=%s", self.page_id)
        self.notices.post("Saved to server", "success")
        return True

    def clear(self) -> None:
        self._autosave.cancel()
        self.draft_store.clear(self.page_id)
        self._replace_document(None, persist=False)
        self.state = HydrationState.UNLOADED
        self._remote_load_attempted = False
        logger.info("Cleared local draft page_id=%s", self.page_id)
        self.notices.post("Cleared local draft", "info")

    # -------- Export --------
    def export_json(self) -> str | None:
        if self.document is None:
            return None
        return export_json(self.document)

    def copy_json(self, write_clipboard: Callable[[str], None]) -> bool:
        """Hand the export text to the view's clipboard writer."""
        text = self.export_json()
        if text is None:
            return False
        write_clipboard(text)
        return True

    def download_json(self, directory: str | Path) -> Path | None:
        if self.document is None:
            return None
        return write_export(self.document, directory)

    # -------- Teardown --------
    async def close(self) -> None:
        for hook in list(self._teardown_hooks):
            hook()
        self._autosave.flush()
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
        self.notices.close()
        self._listeners.clear()
