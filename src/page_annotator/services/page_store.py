from __future__ import annotations

from pydantic import ValidationError

from page_annotator.core.errors import StorageError
from page_annotator.core.geometry import normalize_bbox
from page_annotator.schemas.page import PageDocument
from page_annotator.services.storage import get_storage


def _page_key(page_id: str) -> str:
    return f"pages/{page_id}/page.json"


def load_page(page_id: str) -> PageDocument:
    storage = get_storage()
    key = _page_key(page_id)
    if not storage.exists(key):
        raise FileNotFoundError(key)
    try:
        return PageDocument.model_validate_json(storage.get_bytes(key))
    except ValidationError as exc:
        raise StorageError(
            status_code=500,
            code="page_corrupt",
            message="Stored page document is invalid",
            details={"page_id": page_id, "errors": exc.error_count()},
        ) from exc


def normalize_page(document: PageDocument) -> PageDocument:
    elements = [
        element.model_copy(
            update={
                "geometry": element.geometry.model_copy(
                    update={"bbox_pct": normalize_bbox(element.geometry.bbox_pct)}
                )
            }
        )
        for element in document.elements
    ]
    return document.model_copy(update={"elements": elements})


def save_page(document: PageDocument) -> PageDocument:
    stored = normalize_page(document)
    payload = stored.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    get_storage().put_bytes(_page_key(stored.page_id), payload, content_type="application/json")
    return stored
