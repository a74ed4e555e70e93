"""
Camera calibration and pose module.

Provides the pinhole camera model shared by the ray-cast hit tester, the
synthetic scene and the overlay renderer: intrinsics loaded from inline
config or a JSON calibration file, and a world-from-camera pose.

Camera frame follows OpenCV: +X right, +Y down, +Z forward.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])


@dataclass
class CalibrationData:
    """Container for camera calibration parameters."""

    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray

    @property
    def focal_lengths(self) -> Tuple[float, float]:
        return float(self.camera_matrix[0, 0]), float(self.camera_matrix[1, 1])

    @property
    def principal_point(self) -> Tuple[float, float]:
        return float(self.camera_matrix[0, 2]), float(self.camera_matrix[1, 2])


@dataclass
class CameraPose:
    """World-from-camera rigid transform."""

    rotation: np.ndarray  # 3x3, columns are camera axes in world space
    position: np.ndarray  # camera center in world space

    @staticmethod
    def look_at(
        position: Sequence[float],
        target: Sequence[float],
        up: Sequence[float] = WORLD_UP,
    ) -> "CameraPose":
        """Build a pose for a camera at ``position`` looking at ``target``."""
        eye = np.asarray(position, dtype=np.float64).flatten()
        forward = np.asarray(target, dtype=np.float64).flatten() - eye
        norm = np.linalg.norm(forward)
        if norm < 1e-9:
            raise ValueError("Camera position and target must differ")
        z_axis = forward / norm

        x_axis = np.cross(z_axis, np.asarray(up, dtype=np.float64))
        x_norm = np.linalg.norm(x_axis)
        if x_norm < 1e-9:
            raise ValueError("Viewing direction is parallel to the up vector")
        x_axis /= x_norm
        y_axis = np.cross(z_axis, x_axis)

        rotation = np.column_stack((x_axis, y_axis, z_axis))
        return CameraPose(rotation=rotation, position=eye)

    def as_matrix(self) -> np.ndarray:
        """Return the 4x4 world-from-camera matrix."""
        transform = np.eye(4, dtype=np.float64)
        transform[:3, :3] = self.rotation
        transform[:3, 3] = self.position
        return transform

    def world_to_camera(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (rvec, tvec) mapping world points into the camera frame."""
        rotation_cw = self.rotation.T
        tvec = (-rotation_cw @ self.position).reshape(3, 1)
        rvec, _ = cv2.Rodrigues(rotation_cw)
        return rvec, tvec


def load_calibration(config: Dict) -> CalibrationData:
    """Load calibration data from config or external file."""
    calibration_file = config.get("calibration_file")

    if calibration_file:
        data = _read_calibration_file(calibration_file)
    else:
        data = {
            "camera_matrix": config.get("camera_matrix"),
            "dist_coeffs": config.get("dist_coeffs"),
        }

    if data.get("camera_matrix") is None:
        raise ValueError("Camera matrix must be provided for hit testing and projection.")

    camera_matrix = np.array(data["camera_matrix"], dtype=np.float64).reshape(3, 3)
    dist_coeffs = _normalize_dist_coeffs(data.get("dist_coeffs"))

    LOGGER.debug("Calibration loaded:\n%s", camera_matrix)
    return CalibrationData(camera_matrix=camera_matrix, dist_coeffs=dist_coeffs)


def _read_calibration_file(path: str) -> Dict:
    calib_path = Path(path)
    if not calib_path.exists():
        raise FileNotFoundError(f"Calibration file not found: {path}")
    with calib_path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    return payload


def _normalize_dist_coeffs(coeffs: Optional[Sequence[float]]) -> np.ndarray:
    if coeffs is None:
        coeffs = [0.0, 0.0, 0.0, 0.0, 0.0]
    return np.array(coeffs, dtype=np.float64).reshape(-1, 1)


def project_points(
    points_3d: np.ndarray,
    pose: CameraPose,
    calibration: CalibrationData,
) -> np.ndarray:
    """Project Nx3 world points into Nx2 pixel coordinates."""
    rvec, tvec = pose.world_to_camera()
    image_points, _ = cv2.projectPoints(
        np.asarray(points_3d, dtype=np.float64).reshape(-1, 3),
        rvec,
        tvec,
        calibration.camera_matrix,
        calibration.dist_coeffs,
    )
    return image_points.reshape(-1, 2)


def pixel_ray(
    pixel: Tuple[float, float],
    pose: CameraPose,
    calibration: CalibrationData,
) -> Tuple[np.ndarray, np.ndarray]:
    """Back-project a pixel into a world-space ray (origin, unit direction)."""
    undistorted = cv2.undistortPoints(
        np.array([[pixel]], dtype=np.float64),
        calibration.camera_matrix,
        calibration.dist_coeffs,
    ).reshape(2)
    direction_cam = np.array([undistorted[0], undistorted[1], 1.0])
    direction = pose.rotation @ direction_cam
    return pose.position.copy(), direction / np.linalg.norm(direction)
