from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ElementType = Literal["dialogue", "narration", "free_text", "sfx"]

ELEMENT_TYPES: tuple[str, ...] = ("dialogue", "narration", "free_text", "sfx")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BBoxPct(CamelModel):
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h


class PointPct(CamelModel):
    x: float
    y: float


class PageImage(CamelModel):
    src: str
    natural_width: int = Field(..., gt=0)
    natural_height: int = Field(..., gt=0)


class PageMeta(CamelModel):
    version: str
    engine: str
    created_at: datetime


class ElementText(CamelModel):
    raw: str = ""


class ElementGeometry(CamelModel):
    bbox_pct: BBoxPct
    polygon_pct: list[PointPct] | None = None


class ViewBox(CamelModel):
    w: float
    h: float


class ContainerStyle(CamelModel):
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float | None = None


class ElementContainer(CamelModel):
    # svg_path is in image pixel coordinates, bbox_pct is the box it was drawn against
    svg_path: str
    view_box: ViewBox
    bbox_pct: BBoxPct
    style: ContainerStyle | None = None


class StyleHints(CamelModel):
    text_color: str | None = None
    text_stroke_color: str | None = None
    text_stroke_width: float | None = None
    plate_color: str | None = None
    plate_opacity: float | None = None


class ElementFlags(CamelModel):
    needs_review: bool | None = None


class PageElement(CamelModel):
    id: str
    type: ElementType
    reading_order: int | None = None
    text: ElementText = Field(default_factory=ElementText)
    geometry: ElementGeometry
    container: ElementContainer | None = None
    style_hints: StyleHints | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)
    flags: ElementFlags | None = None

    @property
    def needs_review(self) -> bool:
        return bool(self.flags and self.flags.needs_review)


class PageDocument(CamelModel):
    page_id: str
    page_number: int
    title: str | None = None
    description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    image: PageImage
    elements: list[PageElement] = Field(default_factory=list)
    meta: PageMeta

    def element(self, element_id: str | None) -> PageElement | None:
        if element_id is None:
            return None
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def first_element_id(self) -> str | None:
        return self.elements[0].id if self.elements else None
