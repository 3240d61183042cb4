"""Pixel-space geometry for traced takeoff shapes.

Points are passed around as flat sequences ``[x0, y0, x1, y1, ...]`` exactly as
they are drawn on the canvas. Every function here is pure and tolerant of
under-specified input: too few points yield zero rather than an exception.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple, Union

from shapely.geometry import LineString, Point, Polygon

Coordinate = Tuple[float, float]
Shape = Union[Point, LineString, Polygon]


def pairs(points: Sequence[float]) -> List[Coordinate]:
    """Group a flat coordinate list into ``(x, y)`` pairs.

    A trailing unpaired number is ignored.
    """

    return [(points[i], points[i + 1]) for i in range(0, len(points) - 1, 2)]


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def line_length(points: Sequence[float]) -> float:
    """Sum the Euclidean distance between consecutive points of a polyline."""

    coords = pairs(points)
    if len(coords) < 2:
        return 0.0
    return LineString(coords).length


def polygon_area(points: Sequence[float]) -> float:
    """Return the area enclosed by a ring.

    The ring is closed implicitly (the last vertex connects back to the first),
    and the result is the same for clockwise and counter-clockwise winding.
    """

    coords = pairs(points)
    if len(coords) < 3:
        return 0.0
    return Polygon(coords).area


def is_near_point(x1: float, y1: float, x2: float, y2: float, threshold: float) -> bool:
    """Axis-aligned proximity test: both deltas strictly below ``threshold``."""

    return abs(x1 - x2) < threshold and abs(y1 - y2) < threshold


def to_shape(points: Sequence[float], *, closed: bool = False) -> Optional[Shape]:
    """Build the shapely geometry for a traced shape.

    ``closed`` rings with fewer than three vertices degrade to a polyline.
    """

    coords = pairs(points)
    if not coords:
        return None
    if len(coords) == 1:
        return Point(coords[0])
    if closed and len(coords) >= 3:
        return Polygon(coords)
    return LineString(coords)


def shape_hit(shape: Optional[Shape], x: float, y: float, tolerance: float) -> bool:
    """True when ``(x, y)`` lies inside ``shape`` or within ``tolerance`` of its outline."""

    if shape is None:
        return False
    point = Point(x, y)
    if isinstance(shape, Polygon):
        return shape.contains(point) or shape.exterior.distance(point) <= tolerance
    return shape.distance(point) <= tolerance
