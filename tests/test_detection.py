"""
Tests for rectangle detection.
"""

import os
import sys
import unittest

import cv2
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from rectanchor.detection import RectangleDetector, order_corners  # type: ignore


def blank_frame(width=640, height=480, value=40):
    return np.full((height, width, 3), value, dtype=np.uint8)


class TestOrderCorners(unittest.TestCase):

    def test_shuffled_points(self):
        pts = np.array([[300, 200], [100, 50], [100, 200], [300, 50]], dtype=np.float32)
        ordered = order_corners(pts)
        np.testing.assert_array_equal(ordered, [[100, 50], [300, 50], [300, 200], [100, 200]])

    def test_accepts_contour_shape(self):
        pts = np.array([[[10, 10]], [[50, 12]], [[48, 40]], [[12, 38]]], dtype=np.int32)
        ordered = order_corners(pts)
        self.assertEqual(ordered.shape, (4, 2))
        np.testing.assert_array_equal(ordered[0], [10, 10])
        np.testing.assert_array_equal(ordered[2], [48, 40])

    def test_diamond_uses_each_point_once(self):
        pts = np.array([[150, 100], [50, 100], [100, 50], [100, 150]], dtype=np.int32)
        ordered = order_corners(pts)
        self.assertEqual(len({tuple(p) for p in ordered}), 4)
        np.testing.assert_array_equal(ordered, [[100, 50], [150, 100], [100, 150], [50, 100]])


class TestRectangleDetector(unittest.TestCase):
    """Detection on synthetic frames."""

    def setUp(self):
        self.detector = RectangleDetector()

    def test_detects_axis_aligned_rectangle(self):
        frame = blank_frame()
        cv2.rectangle(frame, (200, 150), (440, 330), (245, 245, 245), thickness=-1)

        observations = self.detector.detect(frame)
        self.assertEqual(len(observations), 1)
        obs = observations[0]

        # Normalized, origin bottom-left; dilation grows the outline by a few pixels.
        tol = 0.015
        self.assertAlmostEqual(obs.top_left[0], 200 / 640, delta=tol)
        self.assertAlmostEqual(obs.top_left[1], 1 - 150 / 480, delta=tol)
        self.assertAlmostEqual(obs.bottom_right[0], 440 / 640, delta=tol)
        self.assertAlmostEqual(obs.bottom_right[1], 1 - 330 / 480, delta=tol)
        self.assertGreater(obs.top_left[1], obs.bottom_left[1])
        self.assertLess(obs.top_left[0], obs.top_right[0])
        self.assertGreater(obs.confidence, 0.9)

        x, y, w, h = obs.bounding_box
        self.assertAlmostEqual(x, 200 / 640, delta=tol)
        self.assertAlmostEqual(y, 1 - 330 / 480, delta=tol)
        self.assertAlmostEqual(w, 240 / 640, delta=2 * tol)
        self.assertAlmostEqual(h, 180 / 480, delta=2 * tol)

    def test_rectangle_turned_45_degrees(self):
        frame = blank_frame()
        diamond = np.array([[320, 140], [420, 240], [320, 340], [220, 240]], dtype=np.int32)
        cv2.fillConvexPoly(frame, diamond, (245, 245, 245))

        observations = self.detector.detect(frame)
        self.assertEqual(len(observations), 1)
        corners = list(observations[0].corners().values())
        self.assertEqual(len(set(corners)), 4)
        width = np.hypot(
            observations[0].top_right[0] - observations[0].top_left[0],
            observations[0].top_right[1] - observations[0].top_left[1],
        )
        self.assertGreater(width, 0.1)

    def test_grayscale_frame(self):
        frame = np.full((480, 640), 40, dtype=np.uint8)
        cv2.rectangle(frame, (100, 100), (300, 250), 245, thickness=-1)
        self.assertEqual(len(self.detector.detect(frame)), 1)

    def test_blank_and_missing_frames(self):
        self.assertEqual(self.detector.detect(blank_frame()), [])
        self.assertEqual(self.detector.detect(None), [])
        self.assertEqual(self.detector.detect(np.zeros((0, 0, 3), dtype=np.uint8)), [])

    def test_ignores_circles(self):
        frame = blank_frame()
        cv2.circle(frame, (320, 240), 80, (245, 245, 245), thickness=-1)
        self.assertEqual(self.detector.detect(frame), [])

    def test_ignores_small_rectangles(self):
        frame = blank_frame()
        cv2.rectangle(frame, (300, 200), (310, 210), (245, 245, 245), thickness=-1)
        self.assertEqual(self.detector.detect(frame), [])

    def test_max_observations(self):
        frame = blank_frame()
        cv2.rectangle(frame, (50, 50), (250, 200), (245, 245, 245), thickness=-1)
        cv2.rectangle(frame, (350, 250), (600, 420), (245, 245, 245), thickness=-1)

        self.assertEqual(len(RectangleDetector().detect(frame)), 1)
        self.assertEqual(len(RectangleDetector({"max_observations": 0}).detect(frame)), 2)


if __name__ == "__main__":
    unittest.main()
