"""
Surface registry.

Keeps the planar surfaces reported by the plane-detection system, keyed by
the surface (anchor) id. Surfaces are only ever added, updated and removed
through the lifecycle calls; nothing here infers identity from the geometry.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .corners import SurfaceId
from .geometry import ORIGIN, Point3

LOGGER = logging.getLogger(__name__)


@dataclass
class Surface:
    """A detected planar surface.

    The plane is the local XZ plane of ``transform`` (local +Y is the normal).
    ``center`` is the offset of the extent rectangle inside that plane, and
    ``extent`` its size along local X and Z in meters.
    """

    surface_id: SurfaceId
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    extent: Tuple[float, float] = (0.0, 0.0)
    center: Point3 = ORIGIN

    @property
    def position(self) -> Point3:
        """World position of the surface origin."""
        return Point3.from_transform(self.transform)

    @property
    def normal(self) -> np.ndarray:
        normal = np.asarray(self.transform, dtype=np.float64)[:3, 1]
        return normal / np.linalg.norm(normal)

    def to_local(self, point: np.ndarray) -> np.ndarray:
        """Express a world point in the surface's local frame."""
        m = np.asarray(self.transform, dtype=np.float64)
        return m[:3, :3].T @ (np.asarray(point, dtype=np.float64) - m[:3, 3])

    def contains_local(self, local_point: np.ndarray, tolerance: float = 1e-6) -> bool:
        """Check whether a local in-plane point lies inside the extent."""
        half_x = self.extent[0] / 2 + tolerance
        half_z = self.extent[1] / 2 + tolerance
        return (
            abs(local_point[0] - self.center.x) <= half_x
            and abs(local_point[2] - self.center.z) <= half_z
        )

    def world_corners(self) -> np.ndarray:
        """Extent rectangle corners in world space (4x3)."""
        half_x, half_z = self.extent[0] / 2, self.extent[1] / 2
        local = np.array(
            [
                [self.center.x - half_x, 0.0, self.center.z - half_z],
                [self.center.x + half_x, 0.0, self.center.z - half_z],
                [self.center.x + half_x, 0.0, self.center.z + half_z],
                [self.center.x - half_x, 0.0, self.center.z + half_z],
            ]
        )
        m = np.asarray(self.transform, dtype=np.float64)
        return local @ m[:3, :3].T + m[:3, 3]


class SurfaceRegistry:
    """
    Mapping of surface id to surface, driven by plane lifecycle events.

    Must be mutated from the thread that created it; the reconstruction code
    reads it on that same thread.
    """

    def __init__(self):
        self._surfaces: Dict[SurfaceId, Surface] = {}
        self._owner_thread = threading.get_ident()

    def _check_owner(self, operation: str):
        if threading.get_ident() != self._owner_thread:
            raise RuntimeError(f"SurfaceRegistry.{operation} called off the owning thread")

    # ------------------------------------------------------------------ #
    # Store API
    # ------------------------------------------------------------------ #
    def add(self, surface: Surface):
        self._check_owner("add")
        if surface.surface_id in self._surfaces:
            LOGGER.warning("Surface %s added twice, replacing", surface.surface_id)
        self._surfaces[surface.surface_id] = surface
        LOGGER.info("Surface added: %s (extent %.2f x %.2f m)", surface.surface_id, *surface.extent)

    def update(self, surface: Surface) -> bool:
        """Replace a known surface. Unknown ids are ignored."""
        self._check_owner("update")
        if surface.surface_id not in self._surfaces:
            LOGGER.debug("Ignoring update for unknown surface %s", surface.surface_id)
            return False
        self._surfaces[surface.surface_id] = surface
        return True

    def remove(self, surface_id: SurfaceId) -> Optional[Surface]:
        self._check_owner("remove")
        surface = self._surfaces.pop(surface_id, None)
        if surface is None:
            LOGGER.debug("Ignoring removal of unknown surface %s", surface_id)
        else:
            LOGGER.info("Surface removed: %s", surface_id)
        return surface

    def get(self, surface_id: SurfaceId) -> Optional[Surface]:
        return self._surfaces.get(surface_id)

    def ids(self) -> List[SurfaceId]:
        return list(self._surfaces)

    def clear(self):
        self._check_owner("clear")
        self._surfaces.clear()

    def __contains__(self, surface_id) -> bool:
        return surface_id in self._surfaces

    def __len__(self) -> int:
        return len(self._surfaces)

    def __iter__(self) -> Iterator[Surface]:
        return iter(list(self._surfaces.values()))

    # ------------------------------------------------------------------ #
    # Plane lifecycle events
    # ------------------------------------------------------------------ #
    def on_surface_added(
        self,
        surface_id: SurfaceId,
        extent: Sequence[float],
        transform: np.ndarray,
        center: Point3 = ORIGIN,
    ) -> Surface:
        surface = Surface(
            surface_id=surface_id,
            transform=np.asarray(transform, dtype=np.float64).reshape(4, 4),
            extent=(float(extent[0]), float(extent[1])),
            center=center,
        )
        self.add(surface)
        return surface

    def on_surface_updated(
        self,
        surface_id: SurfaceId,
        extent: Sequence[float],
        transform: np.ndarray,
        center: Point3 = ORIGIN,
    ) -> Optional[Surface]:
        surface = Surface(
            surface_id=surface_id,
            transform=np.asarray(transform, dtype=np.float64).reshape(4, 4),
            extent=(float(extent[0]), float(extent[1])),
            center=center,
        )
        return surface if self.update(surface) else None

    def on_surface_removed(self, surface_id: SurfaceId) -> Optional[Surface]:
        return self.remove(surface_id)
