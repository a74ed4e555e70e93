"""
Tests for the interactive rectangle selection session.
"""

import os
import sys
import threading
import unittest

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from rectanchor.corners import RectangleObservation  # type: ignore
from rectanchor.geometry import Point3  # type: ignore
from rectanchor.hit_test import HitCandidate  # type: ignore
from rectanchor.messages import Message  # type: ignore
from rectanchor.session import RectangleSession  # type: ignore

FRAME = np.zeros((48, 64, 3), dtype=np.uint8)


def make_observation():
    return RectangleObservation(
        top_left=(0.2, 0.8),
        top_right=(0.6, 0.8),
        bottom_left=(0.2, 0.4),
        bottom_right=(0.6, 0.4),
    )


class FakeDetector:
    """Returns a fixed list of observations, optionally blocking until released."""

    def __init__(self, observations=None, gate=None, error=None):
        self.observations = observations if observations is not None else [make_observation()]
        self.gate = gate
        self.error = error
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.error is not None:
            raise self.error
        return list(self.observations)


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def floor_hits(point):
    return [HitCandidate("floor", Point3(point[0], 0.0, -point[1]), 1.0)]


def no_hits(point):
    return []


class TestRectangleSession(unittest.TestCase):
    """Touch handling with inline detection."""

    def setUp(self):
        self.clock = FakeClock()

    def make_session(self, detector=None, hit_tester=floor_hits, with_surface=True, **config):
        session = RectangleSession(
            detector=detector or FakeDetector(),
            hit_tester=hit_tester,
            config=config,
            clock=self.clock,
        )
        if with_surface:
            session.on_surface_added("floor", (10.0, 10.0), np.eye(4))
        return session

    def test_requires_a_surface(self):
        detector = FakeDetector()
        session = self.make_session(detector=detector, with_surface=False)
        self.assertEqual(session.message, Message.HELP_FIND_SURFACE)

        self.assertFalse(session.touch_began(FRAME))
        self.assertEqual(session.message, Message.HELP_FIND_SURFACE)
        self.assertEqual(detector.calls, 0)
        self.assertIsNone(session.touch_ended())

    def test_surface_added_prompts_for_touch(self):
        session = self.make_session()
        self.assertEqual(session.message, Message.HELP_TAP_HOLD_RECT)

    def test_touch_commits_on_release(self):
        session = self.make_session()

        self.assertTrue(session.touch_began(FRAME))
        self.assertEqual(session.message, Message.HELP_TAP_RELEASE_RECT)
        self.assertEqual(len(session.outlines), 1)
        self.assertEqual(session.rectangles, {})

        rectangle = session.touch_ended()
        self.assertIsNotNone(rectangle)
        self.assertEqual(rectangle.surface_id, "floor")
        self.assertAlmostEqual(rectangle.width, 0.4)
        self.assertAlmostEqual(rectangle.height, 0.4)
        self.assertEqual(list(session.rectangles.values()), [rectangle])
        self.assertEqual(session.outlines, {})
        self.assertEqual(session.message, Message.HELP_TAP_HOLD_RECT)

    def test_held_touch_is_throttled(self):
        detector = FakeDetector()
        session = self.make_session(detector=detector, update_interval=1.0)

        session.touch_began(FRAME)
        self.clock.now = 0.5
        self.assertFalse(session.touch_moved(FRAME))
        self.clock.now = 1.0
        self.assertTrue(session.touch_moved(FRAME))
        self.clock.now = 1.2
        self.assertFalse(session.touch_moved(FRAME))
        self.assertEqual(detector.calls, 2)
        # Only the latest detection keeps an outline.
        self.assertEqual(len(session.outlines), 1)

    def test_touch_moved_without_touch(self):
        session = self.make_session()
        self.assertFalse(session.touch_moved(FRAME))

    def test_no_rectangle(self):
        session = self.make_session(detector=FakeDetector(observations=[]))
        session.touch_began(FRAME)
        self.assertIsNone(session.touch_ended())
        self.assertEqual(session.message, Message.ERR_NO_RECT)
        self.assertTrue(session.message.is_error)

    def test_detector_failure_counts_as_no_rectangle(self):
        session = self.make_session(detector=FakeDetector(error=RuntimeError("camera lost")))
        session.touch_began(FRAME)
        self.assertIsNone(session.touch_ended())
        self.assertEqual(session.message, Message.ERR_NO_RECT)

    def test_no_surface_under_rectangle(self):
        session = self.make_session(hit_tester=no_hits)
        session.touch_began(FRAME)
        self.assertIsNone(session.touch_ended())
        self.assertEqual(session.message, Message.ERR_NO_PLANE_FOR_RECT)
        self.assertIn("surface wasn't found", session.message.text)
        self.assertEqual(session.outlines, {})
        self.assertEqual(session.rectangles, {})

    def test_clear_and_reset(self):
        session = self.make_session()
        session.touch_began(FRAME)
        session.touch_ended()
        generation = session.generation

        session.clear()
        self.assertEqual(session.rectangles, {})
        self.assertGreater(session.generation, generation)
        self.assertFalse(session.in_flight)

        session.reset()
        self.assertEqual(len(session.registry), 0)
        self.assertEqual(session.message, Message.HELP_FIND_SURFACE)

    def test_removing_last_surface(self):
        session = self.make_session()
        session.on_surface_removed("floor")
        self.assertEqual(session.message, Message.HELP_FIND_SURFACE)


class TestBackgroundDetection(unittest.TestCase):
    """Detection on a worker thread, applied by poll()."""

    def test_result_applied_by_poll(self):
        gate = threading.Event()
        session = RectangleSession(
            detector=FakeDetector(gate=gate),
            hit_tester=floor_hits,
            config={"background_detection": True},
        )
        session.on_surface_added("floor", (10.0, 10.0), np.eye(4))

        session.touch_began(FRAME)
        self.assertIsNone(session.touch_ended())
        self.assertTrue(session.in_flight)

        gate.set()
        session.shutdown()
        self.assertEqual(session.poll(), 1)
        self.assertFalse(session.in_flight)
        self.assertEqual(len(session.rectangles), 1)
        self.assertEqual(session.message, Message.HELP_TAP_HOLD_RECT)

    def test_stale_results_are_discarded(self):
        gate = threading.Event()
        detector = FakeDetector(gate=gate)
        session = RectangleSession(
            detector=detector,
            hit_tester=floor_hits,
            config={"background_detection": True},
        )
        session.on_surface_added("floor", (10.0, 10.0), np.eye(4))

        session.touch_began(FRAME)
        session.touch_began(FRAME)
        gate.set()
        session.shutdown()

        self.assertEqual(detector.calls, 2)
        self.assertEqual(session.poll(), 1)
        self.assertEqual(len(session.outlines), 1)
        self.assertIsNotNone(session.touch_ended())
        self.assertEqual(len(session.rectangles), 1)

    def test_clear_drops_in_flight_result(self):
        gate = threading.Event()
        session = RectangleSession(
            detector=FakeDetector(gate=gate),
            hit_tester=floor_hits,
            config={"background_detection": True},
        )
        session.on_surface_added("floor", (10.0, 10.0), np.eye(4))

        session.touch_began(FRAME)
        session.clear()
        gate.set()
        session.shutdown()

        self.assertEqual(session.poll(), 0)
        self.assertEqual(session.rectangles, {})

    def test_context_manager_shuts_down(self):
        with RectangleSession(
            detector=FakeDetector(),
            hit_tester=floor_hits,
            config={"background_detection": True},
        ) as session:
            self.assertIsNotNone(session._executor)
        self.assertIsNone(session._executor)


if __name__ == "__main__":
    unittest.main()
