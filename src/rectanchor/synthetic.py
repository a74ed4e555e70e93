"""
Synthetic scene generation.

Renders a camera frame of a rectangle (a sheet of paper) lying on a tracked
floor surface, together with the surface that the plane-detection system
would report. Used by the demo and the integration tests in place of a live
AR session.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from .geometry import Point3, make_transform
from .pose import CalibrationData, CameraPose, load_calibration, project_points
from .reconstruction import PlaneRectangle, rectangle_corners
from .surfaces import Surface, SurfaceRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class SceneConfig:
    """Configuration for the synthetic scene."""

    image_size: Tuple[int, int] = (640, 480)
    camera_position: Tuple[float, float, float] = (0.0, 1.5, 1.2)
    camera_target: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    floor_height: float = 0.0
    floor_extent: Tuple[float, float] = (10.0, 10.0)
    rect_center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rect_size: Tuple[float, float] = (0.297, 0.21)  # A4 landscape, meters
    rect_yaw: float = 0.0
    background_color: Tuple[int, int, int] = (40, 40, 40)
    floor_color: Tuple[int, int, int] = (90, 110, 120)
    rect_color: Tuple[int, int, int] = (245, 245, 245)
    noise_sigma: float = 0.0
    seed: int = 0


@dataclass
class SyntheticScene:
    """A floor surface and a rectangle seen through a pinhole camera."""

    config: SceneConfig
    calibration: CalibrationData
    floor_id: uuid.UUID = field(default_factory=uuid.uuid4)

    @staticmethod
    def from_config(config: Optional[Dict] = None) -> "SyntheticScene":
        """Build a scene from the ``scene`` and ``calibration`` config sections."""
        cfg = config or {}
        scene_cfg = cfg.get("scene", {})
        defaults = SceneConfig()
        scene = SceneConfig(
            image_size=(
                cfg.get("image_width", defaults.image_size[0]),
                cfg.get("image_height", defaults.image_size[1]),
            ),
            camera_position=tuple(scene_cfg.get("camera_position", defaults.camera_position)),
            camera_target=tuple(scene_cfg.get("camera_target", defaults.camera_target)),
            floor_height=scene_cfg.get("floor_height", defaults.floor_height),
            floor_extent=tuple(scene_cfg.get("floor_extent", defaults.floor_extent)),
            rect_center=tuple(scene_cfg.get("rect_center", defaults.rect_center)),
            rect_size=tuple(scene_cfg.get("rect_size", defaults.rect_size)),
            rect_yaw=scene_cfg.get("rect_yaw", defaults.rect_yaw),
            noise_sigma=scene_cfg.get("noise_sigma", defaults.noise_sigma),
            seed=scene_cfg.get("seed", defaults.seed),
        )
        calibration = load_calibration(cfg.get("calibration", DEFAULT_CALIBRATION))
        return SyntheticScene(config=scene, calibration=calibration)

    @property
    def camera_pose(self) -> CameraPose:
        return CameraPose.look_at(self.config.camera_position, self.config.camera_target)

    @property
    def ground_truth(self) -> PlaneRectangle:
        cx, _, cz = self.config.rect_center
        width, height = self.config.rect_size
        return PlaneRectangle(
            surface_id=self.floor_id,
            center=Point3(cx, self.config.floor_height, cz),
            width=width,
            height=height,
            yaw=self.config.rect_yaw,
        )

    def floor_surface(self) -> Surface:
        return Surface(
            surface_id=self.floor_id,
            transform=make_transform(translation=(0.0, self.config.floor_height, 0.0)),
            extent=self.config.floor_extent,
        )

    def populate(self, registry: SurfaceRegistry):
        """Report the floor to a registry as the plane detector would."""
        floor = self.floor_surface()
        registry.on_surface_added(floor.surface_id, floor.extent, floor.transform, floor.center)

    def render(self) -> np.ndarray:
        """Render the scene as a BGR frame."""
        width, height = self.config.image_size
        frame = np.full((height, width, 3), self.config.background_color, dtype=np.uint8)
        pose = self.camera_pose

        floor_corners = self.floor_surface().world_corners()
        if self._in_front(floor_corners, pose):
            pts = project_points(floor_corners, pose, self.calibration)
            cv2.fillConvexPoly(frame, np.round(pts).astype(np.int32), self.config.floor_color, cv2.LINE_AA)
        else:
            # Floor reaches behind the camera; in this setup it fills the view.
            frame[:] = self.config.floor_color

        rect = rectangle_corners(self.ground_truth)
        if not self._in_front(rect, pose):
            LOGGER.warning("Synthetic rectangle is behind the camera")
            return frame
        pts = project_points(rect, pose, self.calibration)
        cv2.fillConvexPoly(frame, np.round(pts).astype(np.int32), self.config.rect_color, cv2.LINE_AA)

        if self.config.noise_sigma > 0:
            rng = np.random.default_rng(self.config.seed)
            noise = rng.normal(0.0, self.config.noise_sigma, frame.shape)
            frame = np.clip(frame.astype(np.float64) + noise, 0, 255).astype(np.uint8)

        return frame

    @staticmethod
    def _in_front(points: np.ndarray, pose: CameraPose) -> bool:
        camera_points = (points - pose.position) @ pose.rotation
        return bool(np.all(camera_points[:, 2] > 1e-3))


DEFAULT_CALIBRATION = {
    "camera_matrix": [
        [800.0, 0.0, 320.0],
        [0.0, 800.0, 240.0],
        [0.0, 0.0, 1.0],
    ],
    "dist_coeffs": [0.0, 0.0, 0.0, 0.0, 0.0],
}
