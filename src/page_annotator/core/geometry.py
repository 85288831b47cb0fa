"""Normalized bounding-box math.

Every box is expressed as fractions of the image width/height, so the
results do not depend on zoom or on the pixel size of the overlay.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from page_annotator.schemas.page import BBoxPct

MIN_SIZE = 0.01
EPSILON = 1e-9

Corner = Literal["nw", "ne", "sw", "se"]
CORNERS: tuple[Corner, ...] = ("nw", "ne", "sw", "se")


@dataclass(frozen=True)
class PixelRect:
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class Edges:
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def of(cls, bbox: BBoxPct) -> "Edges":
        return cls(left=bbox.x, top=bbox.y, right=bbox.right, bottom=bbox.bottom)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def normalize_bbox(bbox: BBoxPct) -> BBoxPct:
    # size first, then position, so the box always fits inside the unit square
    w = clamp(bbox.w, MIN_SIZE, 1.0)
    h = clamp(bbox.h, MIN_SIZE, 1.0)
    x = clamp(bbox.x, 0.0, 1.0 - w)
    y = clamp(bbox.y, 0.0, 1.0 - h)
    return BBoxPct(x=x, y=y, w=w, h=h)


def is_normalized(bbox: BBoxPct) -> bool:
    return (
        bbox.w >= MIN_SIZE
        and bbox.h >= MIN_SIZE
        and bbox.x >= 0
        and bbox.y >= 0
        and bbox.x + bbox.w <= 1 + EPSILON
        and bbox.y + bbox.h <= 1 + EPSILON
    )


def bbox_to_px(bbox: BBoxPct, width: float, height: float) -> PixelRect:
    return PixelRect(x=bbox.x * width, y=bbox.y * height, w=bbox.w * width, h=bbox.h * height)


def move_bbox(start: BBoxPct, dx: float, dy: float) -> BBoxPct:
    x = clamp(start.x + dx, 0.0, 1.0 - start.w)
    y = clamp(start.y + dy, 0.0, 1.0 - start.h)
    return BBoxPct(x=x, y=y, w=start.w, h=start.h)


def resize_bbox(start: BBoxPct, corner: Corner, dx: float, dy: float) -> BBoxPct:
    """Drag one corner of ``start`` by ``(dx, dy)``.

    Only the edges named by the corner move. When the minimum size or the
    unit square is violated the moving edge is pulled back, the opposite
    corner never moves.
    """
    if corner not in CORNERS:
        raise ValueError(f"Unknown resize handle: {corner}")
    edges = Edges.of(start)
    left, top, right, bottom = edges.left, edges.top, edges.right, edges.bottom

    moving_left = "w" in corner
    moving_right = "e" in corner
    moving_top = "n" in corner
    moving_bottom = "s" in corner

    if moving_left:
        left = clamp(min(left + dx, right - MIN_SIZE), 0.0, right - MIN_SIZE)
    if moving_right:
        right = clamp(max(right + dx, left + MIN_SIZE), left + MIN_SIZE, 1.0)
    if moving_top:
        top = clamp(min(top + dy, bottom - MIN_SIZE), 0.0, bottom - MIN_SIZE)
    if moving_bottom:
        bottom = clamp(max(bottom + dy, top + MIN_SIZE), top + MIN_SIZE, 1.0)

    w = clamp(right - left, MIN_SIZE, 1.0)
    h = clamp(bottom - top, MIN_SIZE, 1.0)
    x = clamp(left, 0.0, 1.0 - w)
    y = clamp(top, 0.0, 1.0 - h)
    return BBoxPct(x=x, y=y, w=w, h=h)


def contains_point(bbox: BBoxPct, x: float, y: float) -> bool:
    return bbox.x <= x <= bbox.right and bbox.y <= y <= bbox.bottom
