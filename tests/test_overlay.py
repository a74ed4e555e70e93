"""
Tests for overlay rendering functionality.
"""

import os
import sys
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from rectanchor.corners import RectangleObservation  # type: ignore
from rectanchor.geometry import Point3  # type: ignore
from rectanchor.messages import Message  # type: ignore
from rectanchor.overlay import OverlayRenderer  # type: ignore
from rectanchor.pose import CameraPose, load_calibration  # type: ignore
from rectanchor.reconstruction import PlaneRectangle  # type: ignore
from rectanchor.surfaces import Surface  # type: ignore
from rectanchor.synthetic import SyntheticScene  # type: ignore
from rectanchor.utils import get_config  # type: ignore


class TestOverlay(unittest.TestCase):
    """Test cases for overlay rendering."""

    def setUp(self):
        self.renderer = OverlayRenderer({"blend_alpha": 0.5})
        self.renderer.initialize(
            load_calibration({"camera_matrix": [[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]]})
        )
        self.pose = CameraPose.look_at((0.0, 1.5, 1.2), (0.0, 0.0, 0.0))
        self.frame = np.full((480, 640, 3), 50, dtype=np.uint8)

    def test_overlay_renderer_initialization(self):
        self.assertTrue(self.renderer.initialized)
        self.assertEqual(self.renderer.config.blend_alpha, 0.5)
        self.assertEqual(self.renderer.config.grid_spacing, 0.25)

    def test_render_returns_copy(self):
        output = self.renderer.render(self.frame)
        self.assertEqual(output.shape, self.frame.shape)
        self.assertIsNot(output, self.frame)
        np.testing.assert_array_equal(output, self.frame)

    def test_rectangle_is_filled(self):
        rectangle = PlaneRectangle("floor", Point3(0.0, 0.0, 0.0), width=0.3, height=0.2, yaw=0.2)
        output = self.renderer.render(self.frame, pose=self.pose, rectangles=[rectangle])
        # Rectangle centre lands on the principal point and is tinted yellow.
        self.assertGreater(int(output[240, 320, 2]), 100)
        self.assertLess(int(output[240, 320, 0]), 50)
        np.testing.assert_array_equal(output[5, 5], self.frame[5, 5])
        np.testing.assert_array_equal(self.frame[240, 320], [50, 50, 50])

    def test_surface_grid(self):
        floor = Surface("floor", extent=(4.0, 4.0))
        output = self.renderer.render(self.frame, pose=self.pose, surfaces=[floor])
        self.assertTrue(np.any(output != self.frame))

    def test_floor_reaching_behind_camera(self):
        scene = SyntheticScene.from_config(get_config())
        floor = scene.floor_surface()
        self.assertIsNone(self.renderer._project(floor.world_corners(), scene.camera_pose))

        output = self.renderer.render(self.frame, pose=scene.camera_pose, surfaces=[floor])
        changed = np.any(output != self.frame, axis=2)
        self.assertGreater(int(changed.sum()), 0)
        # Grid lines through the world origin cross at the principal point.
        self.assertTrue(np.any(changed[237:244, 317:324]))

    def test_surface_behind_camera_is_skipped(self):
        behind = Surface("wall", transform=np.eye(4), extent=(0.5, 0.5), center=Point3(0.0, 0.0, 5.0))
        output = self.renderer.render(self.frame, pose=self.pose, surfaces=[behind])
        np.testing.assert_array_equal(output, self.frame)

    def test_outline(self):
        observation = RectangleObservation((0.25, 0.75), (0.75, 0.75), (0.25, 0.25), (0.75, 0.25))
        output = self.renderer.render(self.frame, outlines=[observation])
        # Top edge runs along y = 120 from x = 160 to x = 480.
        self.assertTrue(np.any(output[118:123, 300] != self.frame[118:123, 300]))
        np.testing.assert_array_equal(output[240, 320], self.frame[240, 320])

    def test_message(self):
        output = self.renderer.render(self.frame, message=Message.ERR_NO_RECT)
        self.assertTrue(np.any(output[:30] != self.frame[:30]))
        np.testing.assert_array_equal(output[400:], self.frame[400:])

    def test_3d_layers_need_calibration(self):
        renderer = OverlayRenderer()
        rectangle = PlaneRectangle("floor", Point3(0.0, 0.0, 0.0), width=0.3, height=0.2, yaw=0.0)
        output = renderer.render(self.frame, pose=self.pose, rectangles=[rectangle])
        np.testing.assert_array_equal(output, self.frame)

    def test_layer_blending(self):
        overlay = np.zeros_like(self.frame)
        blended = self.renderer.blend_layers(self.frame, overlay, alpha=0.5)
        np.testing.assert_array_equal(blended, self.frame)

        overlay[10:20, 10:20] = (250, 250, 250)
        blended = self.renderer.blend_layers(self.frame, overlay, alpha=0.5)
        np.testing.assert_array_equal(blended[0, 0], [50, 50, 50])
        self.assertTrue(np.all(np.abs(blended[15, 15].astype(int) - 150) <= 1))


if __name__ == "__main__":
    unittest.main()
