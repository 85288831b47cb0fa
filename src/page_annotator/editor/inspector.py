from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from page_annotator.core.geometry import clamp
from page_annotator.editor.elements import ensure_element_type, with_needs_review, with_text
from page_annotator.schemas.page import ELEMENT_TYPES, PageElement

if TYPE_CHECKING:
    from page_annotator.editor.controller import PageEditorController

SNIPPET_LENGTH = 46
BBOX_FIELDS = ("x", "y", "w", "h")

_WHITESPACE = re.compile(r"\s+")


def parse_number(raw: object) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_reading_order(raw: object) -> int | None:
    value = parse_number(raw)
    return int(value) if value is not None else None


def parse_keywords(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def format_keywords(keywords: list[str]) -> str:
    return ", ".join(keywords)


def text_snippet(raw: str, limit: int = SNIPPET_LENGTH) -> str:
    return _WHITESPACE.sub(" ", raw)[:limit]


@dataclass(frozen=True)
class ElementRow:
    id: str
    type: str
    order_label: str
    snippet: str
    active: bool
    needs_review: bool


class Inspector:
    """Form-style editing of the selected element and the page metadata."""

    element_types = ELEMENT_TYPES

    def __init__(self, controller: "PageEditorController") -> None:
        self.controller = controller

    @property
    def enabled(self) -> bool:
        return self.controller.has_document

    @property
    def selected(self) -> PageElement | None:
        return self.controller.selected_element

    # -------- Page metadata --------
    @property
    def title(self) -> str:
        document = self.controller.document
        return (document.title or "") if document is not None else ""

    @property
    def description(self) -> str:
        document = self.controller.document
        return (document.description or "") if document is not None else ""

    @property
    def keywords_text(self) -> str:
        document = self.controller.document
        return format_keywords(document.keywords) if document is not None else ""

    def set_title(self, value: str) -> None:
        self.controller.update_page_meta(title=value)

    def set_description(self, value: str) -> None:
        self.controller.update_page_meta(description=value)

    def set_keywords(self, raw: str) -> None:
        self.controller.update_page_meta(keywords=parse_keywords(raw))

    # -------- Element list --------
    def rows(self) -> list[ElementRow]:
        document = self.controller.document
        if document is None:
            return []
        return [
            ElementRow(
                id=element.id,
                type=element.type,
                order_label=f"#{element.reading_order}" if element.reading_order is not None else "-",
                snippet=text_snippet(element.text.raw),
                active=element.id == self.controller.selected_id,
                needs_review=element.needs_review,
            )
            for element in document.elements
        ]

    def select(self, element_id: str | None) -> None:
        self.controller.select(element_id)

    def add_element(self, element_type: str) -> PageElement | None:
        return self.controller.add_element(element_type)

    def delete_selected(self) -> str | None:
        return self.controller.delete_selected()

    # -------- Selected element fields --------
    def _patch_selected(self, updater) -> None:
        selected_id = self.controller.selected_id
        if selected_id is None:
            return
        self.controller.patch_element(selected_id, updater)

    def set_type(self, value: str) -> None:
        element_type = ensure_element_type(value)
        self._patch_selected(lambda el: el.model_copy(update={"type": element_type}))

    def set_reading_order(self, raw: object) -> None:
        reading_order = parse_reading_order(raw)
        self._patch_selected(lambda el: el.model_copy(update={"reading_order": reading_order}))

    def set_text(self, raw: str) -> None:
        self._patch_selected(lambda el: with_text(el, raw))

    def set_needs_review(self, value: bool) -> None:
        self._patch_selected(lambda el: with_needs_review(el, bool(value)))

    def set_bbox_field(self, field: str, raw: object) -> None:
        if field not in BBOX_FIELDS:
            raise ValueError(f"Unknown bbox field: {field}")
        element = self.selected
        value = parse_number(raw)
        if element is None or value is None:
            return
        bbox = element.geometry.bbox_pct.model_copy(update={field: clamp(value, 0.0, 1.0)})
        self.controller.update_bbox(element.id, bbox)
