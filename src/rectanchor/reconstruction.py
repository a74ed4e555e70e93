"""
Rectangle reconstruction.

Turns three corners resolved onto one surface into the rectangle's pose:
center, width, height and yaw about the world vertical axis. Surfaces are
treated as horizontal, so pitch and roll are not modeled.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .corners import CornerTriple, RectangleObservation, SurfaceId
from .geometry import Point3, rotation_about_y
from .hit_test import HitTestAdapter, HitTester
from .resolver import resolve

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaneRectangle:
    """A rectangle anchored to a surface in world space."""

    surface_id: SurfaceId
    center: Point3
    width: float
    height: float
    yaw: float  # radians about +Y, in (-pi/2, pi/2]


def yaw_from_edge(left: Point3, right: Point3) -> float:
    """Rotation about +Y of the left-to-right edge.

    Computed as ``-atan(dz / dx)``, so an edge rotated by +theta about +Y
    (right-handed) gives +theta. A vertical edge (dx == 0) is clamped to
    pi/2, and a zero-length edge gives 0.
    """
    dist_x = right.x - left.x
    dist_z = right.z - left.z
    if dist_x == 0.0:
        return 0.0 if dist_z == 0.0 else math.pi / 2
    yaw = -math.atan(dist_z / dist_x)
    # -atan(+inf) cannot occur for finite input, but keep the half-open range.
    return math.pi / 2 if yaw <= -math.pi / 2 else yaw


def reconstruct(triple: CornerTriple) -> PlaneRectangle:
    """Compute the rectangle described by a resolved corner triple."""
    left, right = triple.horizontal_pair()
    top, bottom = triple.vertical_pair()
    first, second = triple.diagonal_pair()

    rectangle = PlaneRectangle(
        surface_id=triple.surface_id,
        center=first.midpoint(second),
        width=right.distance(left),
        height=top.distance(bottom),
        yaw=yaw_from_edge(left, right),
    )
    LOGGER.debug(
        "Reconstructed rectangle on %s: center=(%.3f, %.3f, %.3f) %.3f x %.3f m yaw=%.3f corner angle=%.1f deg",
        rectangle.surface_id,
        rectangle.center.x,
        rectangle.center.y,
        rectangle.center.z,
        rectangle.width,
        rectangle.height,
        rectangle.yaw,
        math.degrees(triple.corner_angle()),
    )
    return rectangle


def try_reconstruct_rectangle(
    observation: RectangleObservation,
    hit_tester: HitTester,
) -> Optional[PlaneRectangle]:
    """Hit-test an observation's corners and reconstruct it if possible.

    Returns None when no three corners share a surface.
    """
    adapter = hit_tester if isinstance(hit_tester, HitTestAdapter) else HitTestAdapter(hit_tester)
    triple = resolve(adapter.test_corners(observation))
    if triple is None:
        return None
    return reconstruct(triple)


def rectangle_corners(rectangle: PlaneRectangle) -> np.ndarray:
    """World-space corners (TL, TR, BR, BL) of a reconstructed rectangle.

    Top is toward -Z and left toward -X before the yaw rotation, matching how
    an upright camera sees a rectangle lying on the floor ahead of it.
    """
    half_w, half_h = rectangle.width / 2, rectangle.height / 2
    local = np.array(
        [
            [-half_w, 0.0, -half_h],
            [half_w, 0.0, -half_h],
            [half_w, 0.0, half_h],
            [-half_w, 0.0, half_h],
        ]
    )
    rotated = local @ rotation_about_y(rectangle.yaw).T
    return rotated + rectangle.center.as_array()
