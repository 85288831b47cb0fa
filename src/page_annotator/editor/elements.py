from __future__ import annotations

from uuid import uuid4

from page_annotator.core.geometry import normalize_bbox
from page_annotator.schemas.page import (
    ELEMENT_TYPES,
    BBoxPct,
    ElementFlags,
    ElementGeometry,
    ElementText,
    ElementType,
    PageElement,
)

DEFAULT_BBOX: dict[str, BBoxPct] = {
    "dialogue": BBoxPct(x=0.12, y=0.12, w=0.28, h=0.12),
    "narration": BBoxPct(x=0.08, y=0.08, w=0.35, h=0.12),
    "free_text": BBoxPct(x=0.12, y=0.12, w=0.28, h=0.12),
    "sfx": BBoxPct(x=0.12, y=0.68, w=0.22, h=0.14),
}

DEFAULT_CONFIDENCE = 0.5


def ensure_element_type(value: str) -> ElementType:
    if value not in ELEMENT_TYPES:
        raise ValueError(f"Unknown element type: {value}")
    return value  # type: ignore[return-value]


def new_element(element_type: str) -> PageElement:
    element_type = ensure_element_type(element_type)
    return PageElement(
        id=str(uuid4()),
        type=element_type,
        text=ElementText(raw=""),
        geometry=ElementGeometry(bbox_pct=DEFAULT_BBOX[element_type].model_copy()),
        confidence=DEFAULT_CONFIDENCE,
        flags=ElementFlags(needs_review=True),
    )


def with_bbox(element: PageElement, bbox: BBoxPct) -> PageElement:
    geometry = element.geometry.model_copy(update={"bbox_pct": normalize_bbox(bbox)})
    return element.model_copy(update={"geometry": geometry})


def with_text(element: PageElement, raw: str) -> PageElement:
    return element.model_copy(update={"text": ElementText(raw=raw)})


def with_needs_review(element: PageElement, needs_review: bool) -> PageElement:
    flags = (element.flags or ElementFlags()).model_copy(update={"needs_review": needs_review})
    return element.model_copy(update={"flags": flags})


def neighbour_after_delete(elements: list[PageElement], element_id: str) -> str | None:
    """Id to select once ``element_id`` is gone: the next one, else the previous one."""
    ids = [element.id for element in elements]
    if element_id not in ids:
        return None
    index = ids.index(element_id)
    if index + 1 < len(ids):
        return ids[index + 1]
    if index > 0:
        return ids[index - 1]
    return None
