from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from page_annotator.core.geometry import PixelRect, bbox_to_px
from page_annotator.schemas.page import BBoxPct, ContainerStyle, PageElement


@dataclass(frozen=True)
class Affine:
    """SVG-style ``matrix(a, b, c, d, e, f)`` restricted to scale + translate."""

    sx: float = 1.0
    sy: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.sx + self.tx, y * self.sy + self.ty)

    def to_svg(self) -> str:
        return f"matrix({self.sx:g},0,0,{self.sy:g},{self.tx:g},{self.ty:g})"

    @property
    def is_identity(self) -> bool:
        return self.sx == 1.0 and self.sy == 1.0 and self.tx == 0.0 and self.ty == 0.0


@dataclass(frozen=True)
class PlainShape:
    kind: Literal["plain"]
    bbox: BBoxPct


@dataclass(frozen=True)
class ContainedShape:
    kind: Literal["container"]
    bbox: BBoxPct
    path: str
    recorded_bbox: BBoxPct
    style: ContainerStyle | None


ElementShape = PlainShape | ContainedShape


def shape_of(element: PageElement) -> ElementShape:
    bbox = element.geometry.bbox_pct
    if element.container is None:
        return PlainShape(kind="plain", bbox=bbox)
    return ContainedShape(
        kind="container",
        bbox=bbox,
        path=element.container.svg_path,
        recorded_bbox=element.container.bbox_pct,
        style=element.container.style,
    )


def rect_to_rect_matrix(source: PixelRect, target: PixelRect) -> Affine:
    sx = target.w / source.w if source.w > 0 else 1.0
    sy = target.h / source.h if source.h > 0 else 1.0
    return Affine(sx=sx, sy=sy, tx=target.x - source.x * sx, ty=target.y - source.y * sy)


def container_matrix(shape: ElementShape, width: float, height: float) -> Affine | None:
    """Map the container path from the box it was drawn for onto the current bbox."""
    if not isinstance(shape, ContainedShape):
        return None
    return rect_to_rect_matrix(
        bbox_to_px(shape.recorded_bbox, width, height),
        bbox_to_px(shape.bbox, width, height),
    )


def scale_about_center(rect: PixelRect, scale: float) -> Affine:
    cx = rect.x + rect.w / 2
    cy = rect.y + rect.h / 2
    return Affine(sx=scale, sy=scale, tx=cx - cx * scale, ty=cy - cy * scale)
