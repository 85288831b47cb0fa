from __future__ import annotations

import logging
from urllib.parse import quote

from pydantic import ValidationError

from page_annotator.schemas.page import PageDocument
from page_annotator.services.storage import StorageDriver, get_draft_storage
from page_annotator.settings import get_settings

logger = logging.getLogger(__name__)


def draft_key(namespace: str, page_id: str) -> str:
    return f"{namespace}:page:{page_id}"


class LocalDraftStore:
    """Best-effort client-side cache of the page being edited.

    Reads that fail for any reason come back as ``None`` and writes that fail
    are logged and dropped: the remote service stays the system of record.
    Calls block on the storage driver; the local driver is the intended
    backend, an S3 bucket costs one round trip per debounced write.
    """

    def __init__(self, storage: StorageDriver, namespace: str) -> None:
        self.storage = storage
        self.namespace = namespace

    def key(self, page_id: str) -> str:
        return draft_key(self.namespace, page_id)

    def _storage_key(self, page_id: str) -> str:
        return f"drafts/{quote(self.key(page_id), safe=':-_.')}.json"

    def load(self, page_id: str) -> PageDocument | None:
        storage_key = self._storage_key(page_id)
        try:
            if not self.storage.exists(storage_key):
                return None
            raw = self.storage.get_bytes(storage_key)
        except Exception as exc:
            logger.debug("Draft read failed page_id=%s error=%s", page_id, exc)
            return None
        try:
            return PageDocument.model_validate_json(raw)
        except ValidationError as exc:
            logger.debug("Ignoring corrupt draft page_id=%s errors=%s", page_id, exc.error_count())
            return None

    def save(self, page_id: str, document: PageDocument) -> None:
        payload = document.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        try:
            self.storage.put_bytes(self._storage_key(page_id), payload, content_type="application/json")
        except Exception as exc:  # best-effort cache, never surfaces to the editor
            logger.debug("Draft write failed page_id=%s error=%s", page_id, exc)

    def clear(self, page_id: str) -> None:
        try:
            self.storage.delete(self._storage_key(page_id))
        except Exception as exc:
            logger.debug("Draft clear failed page_id=%s error=%s", page_id, exc)


def get_draft_store() -> LocalDraftStore:
    settings = get_settings()
    return LocalDraftStore(get_draft_storage(), settings.ANNOTATOR_DRAFT_NAMESPACE)
