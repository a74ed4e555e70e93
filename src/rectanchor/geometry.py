"""
Geometry primitives.

World space is meters, right-handed, +Y up (the convention of the tracked
planes the rectangles are anchored to).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class Point3:
    """Immutable 3D point / vector in world-space meters."""

    x: float
    y: float
    z: float

    def __add__(self, other: "Point3") -> "Point3":
        return Point3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Point3") -> "Point3":
        return Point3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scaled(self, factor: float) -> "Point3":
        return Point3(self.x * factor, self.y * factor, self.z * factor)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance(self, other: "Point3") -> float:
        """Euclidean distance to another point."""
        return (self - other).length()

    def midpoint(self, other: "Point3") -> "Point3":
        """Point halfway between this point and another."""
        return Point3(
            (self.x + other.x) / 2,
            (self.y + other.y) / 2,
            (self.z + other.z) / 2,
        )

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @staticmethod
    def from_array(values: Sequence[float]) -> "Point3":
        arr = np.asarray(values, dtype=np.float64).flatten()
        if arr.size != 3:
            raise ValueError(f"Expected 3 components, got {arr.size}")
        return Point3(float(arr[0]), float(arr[1]), float(arr[2]))

    @staticmethod
    def from_transform(transform: np.ndarray) -> "Point3":
        """Extract the translation of a 4x4 homogeneous transform."""
        m = np.asarray(transform, dtype=np.float64).reshape(4, 4)
        return Point3(float(m[0, 3]), float(m[1, 3]), float(m[2, 3]))


ORIGIN = Point3(0.0, 0.0, 0.0)


def rotation_about_y(angle: float) -> np.ndarray:
    """Right-handed 3x3 rotation about the world +Y axis."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array(
        [
            [c, 0.0, s],
            [0.0, 1.0, 0.0],
            [-s, 0.0, c],
        ],
        dtype=np.float64,
    )


def make_transform(
    rotation: Optional[np.ndarray] = None,
    translation: Sequence[float] = (0.0, 0.0, 0.0),
) -> np.ndarray:
    """Build a 4x4 homogeneous transform from a rotation and a translation."""
    transform = np.eye(4, dtype=np.float64)
    if rotation is not None:
        transform[:3, :3] = np.asarray(rotation, dtype=np.float64).reshape(3, 3)
    transform[:3, 3] = np.asarray(translation, dtype=np.float64).flatten()
    return transform
