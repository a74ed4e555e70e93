"""
Overlay rendering module.

Draws tracked surfaces, detected rectangle outlines and reconstructed
rectangles onto camera frames with OpenCV. Everything rendered is plain data
(surfaces, observations, ``PlaneRectangle`` values) projected through the
current camera pose.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import cv2
import numpy as np

from .corners import RectangleObservation
from .hit_test import normalized_to_view
from .messages import Message
from .pose import CalibrationData, CameraPose, project_points
from .reconstruction import PlaneRectangle, rectangle_corners
from .surfaces import Surface

LOGGER = logging.getLogger(__name__)


@dataclass
class OverlayConfiguration:
    """Configuration for the overlay renderer."""

    surface_color: Tuple[int, int, int] = (255, 160, 0)
    outline_color: Tuple[int, int, int] = (0, 0, 255)
    rectangle_color: Tuple[int, int, int] = (0, 255, 255)
    text_color: Tuple[int, int, int] = (0, 255, 0)
    error_color: Tuple[int, int, int] = (0, 0, 255)
    grid_spacing: float = 0.25  # meters between surface grid lines
    blend_alpha: float = 0.6
    thickness: int = 2
    antialiasing: bool = True


class OverlayRenderer:
    """
    Renders AR overlays on camera frames.

    Supports:
    - Surface extents with a grid, projected using camera pose
    - 2D outlines of detected rectangles
    - Filled reconstructed rectangles, alpha-blended onto the frame
    - A status message line
    """

    def __init__(self, config: Optional[Dict] = None):
        """Initialize overlay renderer.

        Args:
            config: Configuration dictionary with overlay settings
        """
        cfg = config or {}
        self.config = OverlayConfiguration(
            surface_color=tuple(cfg.get("surface_color", (255, 160, 0))),
            outline_color=tuple(cfg.get("outline_color", (0, 0, 255))),
            rectangle_color=tuple(cfg.get("rectangle_color", (0, 255, 255))),
            text_color=tuple(cfg.get("text_color", (0, 255, 0))),
            error_color=tuple(cfg.get("error_color", (0, 0, 255))),
            grid_spacing=cfg.get("grid_spacing", 0.25),
            blend_alpha=cfg.get("blend_alpha", 0.6),
            thickness=cfg.get("thickness", 2),
            antialiasing=cfg.get("antialiasing", True),
        )
        self.calibration: Optional[CalibrationData] = None
        self.initialized = False

    def initialize(self, calibration: Optional[CalibrationData] = None) -> bool:
        self.calibration = calibration
        self.initialized = True
        LOGGER.info("Overlay renderer initialized")
        return True

    @property
    def _line_type(self) -> int:
        return cv2.LINE_AA if self.config.antialiasing else cv2.LINE_8

    def render(
        self,
        frame: np.ndarray,
        pose: Optional[CameraPose] = None,
        surfaces: Iterable[Surface] = (),
        rectangles: Iterable[PlaneRectangle] = (),
        outlines: Iterable[RectangleObservation] = (),
        message: Optional[Message] = None,
    ) -> np.ndarray:
        """Render all overlays onto a copy of the frame.

        Args:
            frame: Input BGR frame
            pose: Camera pose for 3D projection; 3D layers are skipped without it
            surfaces: Tracked surfaces to draw as grids
            rectangles: Reconstructed rectangles to fill
            outlines: Detected 2D rectangles to outline
            message: Status message to print

        Returns:
            Frame with overlays rendered
        """
        if frame is None:
            return frame

        layer = np.zeros_like(frame)
        if pose is not None and self.calibration is not None:
            for surface in surfaces:
                self._draw_surface(layer, surface, pose)
            for rectangle in rectangles:
                self._draw_rectangle(layer, rectangle, pose)
        elif pose is not None:
            LOGGER.warning("Cannot render 3D overlays without calibration data")

        output = self.blend_layers(frame, layer, self.config.blend_alpha)

        for observation in outlines:
            self._draw_outline(output, observation)
        if message is not None:
            self._draw_message(output, message)
        return output

    # ------------------------------------------------------------------ #
    # Layers
    # ------------------------------------------------------------------ #
    def _project(self, points: np.ndarray, pose: CameraPose) -> Optional[np.ndarray]:
        camera_points = (points - pose.position) @ pose.rotation
        if np.any(camera_points[:, 2] <= 1e-3):
            return None
        try:
            return np.round(project_points(points, pose, self.calibration)).astype(np.int32)
        except cv2.error as e:
            LOGGER.debug("Projection failed: %s", e)
            return None

    def _draw_surface(self, frame: np.ndarray, surface: Surface, pose: CameraPose):
        corners = surface.world_corners()
        pts = self._project(corners, pose)
        if pts is not None:
            cv2.polylines(frame, [pts.reshape(-1, 1, 2)], True, self.config.surface_color, 1, self._line_type)
        else:
            # Part of the surface is behind the camera; draw what is in front.
            for i in range(4):
                self._draw_segment(frame, corners[i], corners[(i + 1) % 4], pose)

        spacing = self.config.grid_spacing
        if spacing <= 0:
            return
        # Grid lines parallel to each pair of opposite edges
        for start, end, across in ((0, 3, (1, 2)), (0, 1, (3, 2))):
            a0, a1 = corners[start], corners[end]
            b0, b1 = corners[across[0]], corners[across[1]]
            count = int(np.linalg.norm(a0 - corners[across[0]]) / spacing)
            for i in range(1, count):
                t = i / count
                self._draw_segment(frame, a0 + t * (b0 - a0), a1 + t * (b1 - a1), pose)

    def _draw_segment(self, frame: np.ndarray, p0: np.ndarray, p1: np.ndarray, pose: CameraPose):
        segment = self._clip_to_near_plane(p0, p1, pose)
        seg_pts = self._project(segment, pose) if segment is not None else None
        if seg_pts is None:
            return
        height, width = frame.shape[:2]
        visible, pt0, pt1 = cv2.clipLine(
            (0, 0, width, height),
            (int(seg_pts[0][0]), int(seg_pts[0][1])),
            (int(seg_pts[1][0]), int(seg_pts[1][1])),
        )
        if visible:
            cv2.line(frame, pt0, pt1, self.config.surface_color, 1, self._line_type)

    @staticmethod
    def _clip_to_near_plane(
        p0: np.ndarray,
        p1: np.ndarray,
        pose: CameraPose,
        near: float = 0.05,
    ) -> Optional[np.ndarray]:
        """Cut a world segment to the part in front of the camera."""
        z0 = float((p0 - pose.position) @ pose.rotation[:, 2])
        z1 = float((p1 - pose.position) @ pose.rotation[:, 2])
        if z0 < near and z1 < near:
            return None
        if z0 < near:
            p0 = p0 + (near - z0) / (z1 - z0) * (p1 - p0)
        elif z1 < near:
            p1 = p1 + (near - z1) / (z0 - z1) * (p0 - p1)
        return np.array([p0, p1])

    def _draw_rectangle(self, frame: np.ndarray, rectangle: PlaneRectangle, pose: CameraPose):
        pts = self._project(rectangle_corners(rectangle), pose)
        if pts is None:
            return
        cv2.fillConvexPoly(frame, pts, self.config.rectangle_color, self._line_type)

    def _draw_outline(self, frame: np.ndarray, observation: RectangleObservation):
        height, width = frame.shape[:2]
        pts = np.array(
            [normalized_to_view(point, (width, height)) for point in observation.outline()],
            dtype=np.float64,
        )
        cv2.polylines(
            frame,
            [np.round(pts).astype(np.int32).reshape(-1, 1, 2)],
            isClosed=True,
            color=self.config.outline_color,
            thickness=self.config.thickness,
            lineType=self._line_type,
        )

    def _draw_message(self, frame: np.ndarray, message: Message):
        color = self.config.error_color if message.is_error else self.config.text_color
        cv2.putText(frame, message.text, (10, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.45, color, 1, self._line_type)

    # ------------------------------------------------------------------ #
    # Blending
    # ------------------------------------------------------------------ #
    def blend_layers(
        self,
        background: np.ndarray,
        overlay: np.ndarray,
        alpha: float = 0.6,
    ) -> np.ndarray:
        """Blend overlay layer onto background.

        Args:
            background: Background frame
            overlay: Overlay frame (non-zero pixels are blended)
            alpha: Blend factor for overlay (0.0-1.0)

        Returns:
            Blended result
        """
        gray_overlay = cv2.cvtColor(overlay, cv2.COLOR_BGR2GRAY)
        mask = gray_overlay > 0
        if not np.any(mask):
            return background.copy()

        result = background.copy()
        blended = cv2.addWeighted(
            background[mask].astype(np.float32),
            1 - alpha,
            overlay[mask].astype(np.float32),
            alpha,
            0,
        )
        result[mask] = np.clip(blended, 0, 255).astype(np.uint8).reshape(result[mask].shape)
        return result
