"""
Rectangle corner types.

A detected rectangle is described by four normalized 2D corners. Once the
corners are hit-tested against known surfaces, three of them (all on one
surface) are enough to describe the rectangle in 3D; which one is missing
decides how the remaining three pair up into edges and a diagonal.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, Iterator, Mapping, Optional, Tuple

from .geometry import Point3

# Normalized image point: [0, 1] on both axes, origin bottom-left, y up.
NormalizedPoint = Tuple[float, float]
SurfaceId = Hashable


class Corner(Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"


@dataclass(frozen=True)
class RectangleObservation:
    """A 2D rectangle reported by the rectangle detector."""

    top_left: NormalizedPoint
    top_right: NormalizedPoint
    bottom_left: NormalizedPoint
    bottom_right: NormalizedPoint
    confidence: float = 1.0
    bounding_box: Optional[Tuple[float, float, float, float]] = None  # normalized (x, y, w, h)
    observation_id: uuid.UUID = field(default_factory=uuid.uuid4)

    def corner(self, corner: Corner) -> NormalizedPoint:
        return getattr(self, corner.value)

    def corners(self) -> Dict[Corner, NormalizedPoint]:
        return {corner: self.corner(corner) for corner in Corner}

    def outline(self) -> Tuple[NormalizedPoint, ...]:
        """Corners in drawing order (TL, TR, BR, BL)."""
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)


@dataclass(frozen=True)
class CornerPairs:
    """Corner roles for one missing-corner variant."""

    horizontal: Tuple[Corner, Corner]  # (left, right)
    vertical: Tuple[Corner, Corner]  # (top, bottom)
    diagonal: Tuple[Corner, Corner]
    vertex: Corner  # the right-angle corner shared by both edges


PAIRS_BY_MISSING: Dict[Corner, CornerPairs] = {
    Corner.BOTTOM_RIGHT: CornerPairs(
        horizontal=(Corner.TOP_LEFT, Corner.TOP_RIGHT),
        vertical=(Corner.TOP_LEFT, Corner.BOTTOM_LEFT),
        diagonal=(Corner.TOP_RIGHT, Corner.BOTTOM_LEFT),
        vertex=Corner.TOP_LEFT,
    ),
    Corner.BOTTOM_LEFT: CornerPairs(
        horizontal=(Corner.TOP_LEFT, Corner.TOP_RIGHT),
        vertical=(Corner.TOP_RIGHT, Corner.BOTTOM_RIGHT),
        diagonal=(Corner.TOP_LEFT, Corner.BOTTOM_RIGHT),
        vertex=Corner.TOP_RIGHT,
    ),
    Corner.TOP_RIGHT: CornerPairs(
        horizontal=(Corner.BOTTOM_LEFT, Corner.BOTTOM_RIGHT),
        vertical=(Corner.TOP_LEFT, Corner.BOTTOM_LEFT),
        diagonal=(Corner.TOP_LEFT, Corner.BOTTOM_RIGHT),
        vertex=Corner.BOTTOM_LEFT,
    ),
    Corner.TOP_LEFT: CornerPairs(
        horizontal=(Corner.BOTTOM_LEFT, Corner.BOTTOM_RIGHT),
        vertical=(Corner.TOP_RIGHT, Corner.BOTTOM_RIGHT),
        diagonal=(Corner.TOP_RIGHT, Corner.BOTTOM_LEFT),
        vertex=Corner.BOTTOM_RIGHT,
    ),
}


@dataclass(frozen=True)
class CornerTriple:
    """
    Three rectangle corners resolved onto a single surface.

    ``points`` holds exactly the three corners other than ``missing``.
    """

    missing: Corner
    points: Mapping[Corner, Point3]
    surface_id: SurfaceId

    def __post_init__(self):
        expected = set(Corner) - {self.missing}
        if set(self.points) != expected:
            raise ValueError(
                f"CornerTriple missing {self.missing.name} needs corners "
                f"{sorted(c.name for c in expected)}, got {sorted(c.name for c in self.points)}"
            )
        # Freeze the mapping so the triple stays a value.
        object.__setattr__(self, "points", dict(self.points))

    @property
    def pairs(self) -> CornerPairs:
        return PAIRS_BY_MISSING[self.missing]

    def __getitem__(self, corner: Corner) -> Point3:
        return self.points[corner]

    def __iter__(self) -> Iterator[Corner]:
        return iter(c for c in Corner if c is not self.missing)

    def horizontal_pair(self) -> Tuple[Point3, Point3]:
        left, right = self.pairs.horizontal
        return self.points[left], self.points[right]

    def vertical_pair(self) -> Tuple[Point3, Point3]:
        top, bottom = self.pairs.vertical
        return self.points[top], self.points[bottom]

    def diagonal_pair(self) -> Tuple[Point3, Point3]:
        first, second = self.pairs.diagonal
        return self.points[first], self.points[second]

    def corner_angle(self) -> float:
        """Angle in radians at the vertex corner; pi/2 for a true rectangle."""
        vertex = self.points[self.pairs.vertex]
        a, b = self.diagonal_pair()

        dist_a = vertex.distance(b)
        dist_b = vertex.distance(a)
        dist_c = a.distance(b)
        if dist_a == 0.0 or dist_b == 0.0:
            return 0.0

        cos_c = (dist_a * dist_a + dist_b * dist_b - dist_c * dist_c) / (2 * dist_a * dist_b)
        return math.acos(max(-1.0, min(1.0, cos_c)))
