"""
Coordinate helpers for OCR polygons: bounding boxes, centroids, gaps and
padded/clamped rectangles used by masking and highlighting.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

Point = Tuple[float, float]
Polygon = Tuple[Point, ...]
Box = Tuple[float, float, float, float]  # (x1, y1, x2, y2)
PixelBox = Tuple[int, int, int, int]  # half-open: x in [x1, x2), y in [y1, y2)


def bounding_box(points: Iterable[Point]) -> Box:
    pts = list(points)
    if not pts:
        raise ValueError("Cannot compute a bounding box of zero points.")
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return min(xs), min(ys), max(xs), max(ys)


def box_to_polygon(box: Box) -> Polygon:
    """Clockwise 4-point polygon starting at the top-left corner."""
    x1, y1, x2, y2 = box
    return ((x1, y1), (x2, y1), (x2, y2), (x1, y2))


def combine_coordinates(polygons: Iterable[Sequence[Point]]) -> Polygon:
    """Minimal axis-aligned bounding polygon covering every point of every polygon."""
    all_points: List[Point] = [pt for poly in polygons for pt in poly]
    return box_to_polygon(bounding_box(all_points))


def centroid(points: Iterable[Point]) -> Point:
    pts = list(points)
    if not pts:
        raise ValueError("Cannot compute the centroid of zero points.")
    return (
        sum(p[0] for p in pts) / len(pts),
        sum(p[1] for p in pts) / len(pts),
    )


def box_height(box: Box) -> float:
    return max(0.0, box[3] - box[1])


def axis_gaps(a: Box, b: Box) -> Tuple[float, float]:
    """Horizontal and vertical whitespace between two boxes (0 when they overlap on that axis)."""
    dx = max(0.0, max(a[0], b[0]) - min(a[2], b[2]))
    dy = max(0.0, max(a[1], b[1]) - min(a[3], b[3]))
    return dx, dy


def box_gap(a: Box, b: Box) -> float:
    """Euclidean distance between the closest edges of two boxes."""
    dx, dy = axis_gaps(a, b)
    return math.hypot(dx, dy)


def vertical_overlap(a: Box, b: Box) -> float:
    """Fraction of the shorter box's height shared by both boxes."""
    inter = min(a[3], b[3]) - max(a[1], b[1])
    shorter = min(box_height(a), box_height(b))
    if shorter <= 0:
        return 0.0
    return max(0.0, inter) / shorter


def pad_and_clamp(box: Box, padding: float, width: int, height: int) -> PixelBox:
    """Expand `box` by `padding` on every side and clamp it to `[0, width) x [0, height)`.

    Lower bounds are floored and upper bounds ceiled so fractional OCR
    coordinates never shrink the covered area.
    """
    x1 = max(0, int(math.floor(box[0] - padding)))
    y1 = max(0, int(math.floor(box[1] - padding)))
    x2 = min(width, int(math.ceil(box[2] + padding)))
    y2 = min(height, int(math.ceil(box[3] + padding)))
    return x1, y1, max(x1, x2), max(y1, y2)


def translate(points: Iterable[Point], dx: float, dy: float) -> List[Point]:
    return [(x + dx, y + dy) for x, y in points]
