"""
rectanchor - planar rectangle anchoring for AR.

This package provides functionality for:
- Rectangle detection in camera frames
- Hit testing rectangle corners against tracked planar surfaces
- Resolving three corners that share a surface
- Reconstructing the rectangle's 3D center, size and yaw
- Overlay rendering of surfaces and rectangles
"""

from .corners import Corner, CornerTriple, RectangleObservation
from .detection import DetectionConfig, RectangleDetector
from .geometry import Point3
from .hit_test import HitCandidate, HitTestAdapter, RaycastHitTester
from .intersection import filter_by_intersection, first_common
from .messages import Message
from .overlay import OverlayConfiguration, OverlayRenderer
from .pose import CalibrationData, CameraPose, load_calibration
from .reconstruction import PlaneRectangle, reconstruct, rectangle_corners, try_reconstruct_rectangle
from .resolver import resolve
from .session import RectangleSession, SessionConfig
from .surfaces import Surface, SurfaceRegistry
from .synthetic import SceneConfig, SyntheticScene

__version__ = "0.1.0"

__all__ = [
    # Geometry & corners
    "Point3",
    "Corner",
    "CornerTriple",
    "RectangleObservation",
    # Surfaces & hit testing
    "Surface",
    "SurfaceRegistry",
    "HitCandidate",
    "HitTestAdapter",
    "RaycastHitTester",
    # Reconstruction
    "filter_by_intersection",
    "first_common",
    "resolve",
    "reconstruct",
    "rectangle_corners",
    "try_reconstruct_rectangle",
    "PlaneRectangle",
    # Detection & session
    "DetectionConfig",
    "RectangleDetector",
    "Message",
    "RectangleSession",
    "SessionConfig",
    # Camera & rendering
    "CalibrationData",
    "CameraPose",
    "load_calibration",
    "OverlayConfiguration",
    "OverlayRenderer",
    "SceneConfig",
    "SyntheticScene",
]
