"""
Rectangle detection module.

Finds convex quadrilaterals in a camera frame with OpenCV edge and contour
analysis, and reports them as ``RectangleObservation`` values in normalized
image coordinates (origin bottom-left).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import cv2
import numpy as np

from .corners import RectangleObservation
from .hit_test import view_to_normalized

LOGGER = logging.getLogger(__name__)


@dataclass
class DetectionConfig:
    """Configuration for rectangle detection."""

    blur_kernel: int = 5
    canny_low: int = 50
    canny_high: int = 150
    approx_epsilon: float = 0.02  # fraction of contour perimeter
    min_size: float = 0.05  # shorter side, as fraction of the smaller image dimension
    min_confidence: float = 0.5
    max_observations: int = 1  # 0 = unlimited
    border_margin: int = 2  # pixels; quads touching the frame edge are dropped


def order_corners(pts: np.ndarray) -> np.ndarray:
    """Order 4 pixel points as top-left, top-right, bottom-right, bottom-left.

    Points are sorted clockwise (image y points down) around their centroid,
    then rotated so the point with the smallest x + y comes first. Each input
    point is used exactly once, even for a quad turned 45 degrees.
    """
    pts = pts.reshape(4, 2).astype(np.float64)
    center = pts.mean(axis=0)
    angles = np.arctan2(pts[:, 1] - center[1], pts[:, 0] - center[0])
    pts = pts[np.argsort(angles, kind="stable")]
    start = int(np.argmin(pts.sum(axis=1)))
    return np.roll(pts, -start, axis=0)


class RectangleDetector:
    """Detects rectangles in BGR or grayscale frames."""

    def __init__(self, config: Optional[Dict] = None):
        cfg = config or {}
        self.config = DetectionConfig(
            blur_kernel=cfg.get("blur_kernel", 5),
            canny_low=cfg.get("canny_low", 50),
            canny_high=cfg.get("canny_high", 150),
            approx_epsilon=cfg.get("approx_epsilon", 0.02),
            min_size=cfg.get("min_size", 0.05),
            min_confidence=cfg.get("min_confidence", 0.5),
            max_observations=cfg.get("max_observations", 1),
            border_margin=cfg.get("border_margin", 2),
        )

    def detect(self, frame: np.ndarray) -> List[RectangleObservation]:
        """Detect rectangles, best first.

        Args:
            frame: BGR or grayscale image

        Returns:
            Observations sorted by descending confidence
        """
        if frame is None or frame.size == 0:
            return []

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
        height, width = gray.shape[:2]

        k = self.config.blur_kernel
        if k > 1:
            gray = cv2.GaussianBlur(gray, (k, k), 0)
        edges = cv2.Canny(gray, self.config.canny_low, self.config.canny_high)
        edges = cv2.dilate(edges, np.ones((3, 3), dtype=np.uint8), iterations=1)
        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        min_side = self.config.min_size * min(width, height)
        observations: List[RectangleObservation] = []

        for contour in contours:
            peri = cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(contour, self.config.approx_epsilon * peri, True)
            if len(approx) != 4 or not cv2.isContourConvex(approx):
                continue

            x, y, w, h = cv2.boundingRect(approx)
            margin = self.config.border_margin
            if x <= margin or y <= margin or x + w >= width - margin or y + h >= height - margin:
                continue

            corners = order_corners(approx)
            sides = np.linalg.norm(corners - np.roll(corners, -1, axis=0), axis=1)
            if sides.min() < min_side:
                continue

            # Rectangularity: quad area over its minimum-area bounding box
            (_, _), (rw, rh), _ = cv2.minAreaRect(approx.astype(np.float32))
            box_area = rw * rh
            confidence = float(cv2.contourArea(approx) / box_area) if box_area > 0 else 0.0
            if confidence < self.config.min_confidence:
                continue

            size = (width, height)
            observations.append(
                RectangleObservation(
                    top_left=view_to_normalized(corners[0], size),
                    top_right=view_to_normalized(corners[1], size),
                    bottom_right=view_to_normalized(corners[2], size),
                    bottom_left=view_to_normalized(corners[3], size),
                    confidence=confidence,
                    bounding_box=(x / width, 1.0 - (y + h) / height, w / width, h / height),
                )
            )

        observations.sort(key=lambda obs: obs.confidence, reverse=True)
        if self.config.max_observations > 0:
            observations = observations[: self.config.max_observations]

        LOGGER.debug("Detected %d rectangle(s) in %d contours", len(observations), len(contours))
        return observations
