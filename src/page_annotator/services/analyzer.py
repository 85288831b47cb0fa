from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Protocol

from page_annotator.core.errors import AnalyzerError
from page_annotator.core.geometry import normalize_bbox
from page_annotator.schemas.page import (
    BBoxPct,
    ContainerStyle,
    ElementContainer,
    ElementFlags,
    ElementGeometry,
    ElementText,
    PageDocument,
    PageElement,
    PageMeta,
    StyleHints,
    ViewBox,
)
from page_annotator.settings import get_settings

ANALYSIS_VERSION = "0.1"


class PageAnalyzer(Protocol):
    engine: str

    def analyze(self, page: PageDocument) -> list[PageElement]:
        ...


def _element_id(page_id: str, index: int) -> str:
    digest = hashlib.sha256(f"{page_id}:{index}".encode("utf-8")).hexdigest()
    return f"el-{digest[:12]}"


def _ellipse_path(bbox: BBoxPct, width: int, height: int) -> str:
    rx = bbox.w * width / 2
    ry = bbox.h * height / 2
    cx = bbox.x * width + rx
    cy = bbox.y * height + ry
    return (
        f"M {cx - rx:.1f} {cy:.1f} "
        f"A {rx:.1f} {ry:.1f} 0 1 0 {cx + rx:.1f} {cy:.1f} "
        f"A {rx:.1f} {ry:.1f} 0 1 0 {cx - rx:.1f} {cy:.1f} Z"
    )


class MockPageAnalyzer:
    """Deterministic suggestions used when no recognition engine is wired in."""

    engine = "mock"

    def analyze(self, page: PageDocument) -> list[PageElement]:
        width = page.image.natural_width
        height = page.image.natural_height

        bubble = normalize_bbox(BBoxPct(x=0.55, y=0.12, w=0.35, h=0.18))
        narration = normalize_bbox(BBoxPct(x=0.08, y=0.08, w=0.35, h=0.12))
        sfx = normalize_bbox(BBoxPct(x=0.12, y=0.68, w=0.22, h=0.14))

        return [
            PageElement(
                id=_element_id(page.page_id, 0),
                type="narration",
                reading_order=1,
                text=ElementText(raw="The next day..."),
                geometry=ElementGeometry(bbox_pct=narration),
                style_hints=StyleHints(plate_color="#f7f7f7", plate_opacity=0.9),
                confidence=0.5,
                flags=ElementFlags(needs_review=True),
            ),
            PageElement(
                id=_element_id(page.page_id, 1),
                type="dialogue",
                reading_order=2,
                text=ElementText(raw="Where were you?"),
                geometry=ElementGeometry(bbox_pct=bubble),
                container=ElementContainer(
                    svg_path=_ellipse_path(bubble, width, height),
                    view_box=ViewBox(w=width, h=height),
                    bbox_pct=bubble,
                    style=ContainerStyle(fill="#ffffff", stroke="#0f172a", stroke_width=4),
                ),
                confidence=0.5,
                flags=ElementFlags(needs_review=True),
            ),
            PageElement(
                id=_element_id(page.page_id, 2),
                type="sfx",
                text=ElementText(raw="BOOM!"),
                geometry=ElementGeometry(bbox_pct=sfx),
                style_hints=StyleHints(text_color="#ff00ff", text_stroke_color="#000000", text_stroke_width=2),
                confidence=0.5,
                flags=ElementFlags(needs_review=True),
            ),
        ]


_ANALYZERS: dict[str, type] = {
    "mock": MockPageAnalyzer,
}


def get_analyzer() -> PageAnalyzer:
    engine = get_settings().ANNOTATOR_ANALYZER_ENGINE.lower()
    factory = _ANALYZERS.get(engine)
    if factory is None:
        raise AnalyzerError(
            status_code=500,
            code="analyzer_not_configured",
            message="Unknown analyzer engine",
            details={"engine": engine, "available": sorted(_ANALYZERS)},
        )
    return factory()


def analyze_page(page: PageDocument, analyzer: PageAnalyzer) -> PageDocument:
    try:
        elements = analyzer.analyze(page)
    except AnalyzerError:
        raise
    except Exception as exc:
        raise AnalyzerError(
            status_code=502,
            code="analyzer_failed",
            message="Page analysis failed",
            details={"page_id": page.page_id, "engine": analyzer.engine, "error": str(exc)},
        ) from exc
    return page.model_copy(
        update={
            "elements": elements,
            "meta": PageMeta(
                version=ANALYSIS_VERSION,
                engine=analyzer.engine,
                created_at=datetime.now(timezone.utc),
            ),
        }
    )
