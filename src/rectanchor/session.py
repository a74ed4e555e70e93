"""
Rectangle selection session.

Ties the pieces together the way an interactive AR view uses them: a touch
starts rectangle detection on the current frame, holding the touch re-runs
detection at most once per ``update_interval``, and releasing it commits the
last reconstructed rectangle.

Detection may run on a single background worker. Its results are queued and
only applied by ``poll()`` on the thread that owns the session, which is also
the only thread that touches the surface registry. Every detection request
gets a new generation number and results from older generations are dropped.
"""

from __future__ import annotations

import logging
import queue
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .corners import RectangleObservation, SurfaceId
from .detection import RectangleDetector
from .geometry import ORIGIN, Point3
from .hit_test import HitTestAdapter, HitTester
from .messages import Message
from .reconstruction import PlaneRectangle, try_reconstruct_rectangle
from .surfaces import SurfaceRegistry

LOGGER = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Configuration for touch handling and detection scheduling."""

    update_interval: float = 1.0  # seconds between detections while a touch is held
    background_detection: bool = False


@dataclass
class PendingSelection:
    """Latest detection result while a touch is held."""

    generation: int
    observation: Optional[RectangleObservation]
    rectangle: Optional[PlaneRectangle]


class RectangleSession:
    """Interactive rectangle selection over a surface registry."""

    def __init__(
        self,
        detector: RectangleDetector,
        hit_tester: HitTester,
        registry: Optional[SurfaceRegistry] = None,
        config: Optional[Dict] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        cfg = config or {}
        self.config = SessionConfig(
            update_interval=cfg.get("update_interval", 1.0),
            background_detection=cfg.get("background_detection", False),
        )
        self.detector = detector
        self.hit_tester = hit_tester if isinstance(hit_tester, HitTestAdapter) else HitTestAdapter(hit_tester)
        self.registry = registry if registry is not None else SurfaceRegistry()
        self.clock = clock

        self.generation = 0
        self.touch_active = False
        self.last_request_time: Optional[float] = None
        self.message: Optional[Message] = None

        self.rectangles: Dict[uuid.UUID, PlaneRectangle] = {}
        self.outlines: Dict[uuid.UUID, RectangleObservation] = {}
        self.pending: Optional[PendingSelection] = None
        self._applied_generation = 0

        self._results: "queue.Queue[Tuple[int, List[RectangleObservation]]]" = queue.Queue()
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.config.background_detection:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rect-detect")

        self._refresh_idle_message()

    @property
    def in_flight(self) -> bool:
        """True while the latest detection request has not been applied."""
        return self._applied_generation != self.generation

    # ------------------------------------------------------------------ #
    # Plane lifecycle passthrough
    # ------------------------------------------------------------------ #
    def on_surface_added(
        self,
        surface_id: SurfaceId,
        extent: Sequence[float],
        transform: np.ndarray,
        center: Point3 = ORIGIN,
    ):
        self.registry.on_surface_added(surface_id, extent, transform, center)
        self._refresh_idle_message()

    def on_surface_updated(
        self,
        surface_id: SurfaceId,
        extent: Sequence[float],
        transform: np.ndarray,
        center: Point3 = ORIGIN,
    ):
        self.registry.on_surface_updated(surface_id, extent, transform, center)

    def on_surface_removed(self, surface_id: SurfaceId):
        self.registry.on_surface_removed(surface_id)
        self._refresh_idle_message()

    # ------------------------------------------------------------------ #
    # Touch handling
    # ------------------------------------------------------------------ #
    def touch_began(self, frame: Any) -> bool:
        """Start a selection on the given frame.

        Returns:
            True if detection was requested
        """
        if len(self.registry) == 0:
            self._set_message(Message.HELP_FIND_SURFACE)
            return False

        self.touch_active = True
        self._discard_pending()
        self._set_message(Message.HELP_TAP_RELEASE_RECT)
        self._request_detection(frame)
        return True

    def touch_moved(self, frame: Any) -> bool:
        """Re-run detection for a held touch, at most once per update interval."""
        if not self.touch_active:
            return False
        now = self.clock()
        if self.last_request_time is not None and now - self.last_request_time < self.config.update_interval:
            return False
        self._request_detection(frame)
        return True

    def touch_ended(self) -> Optional[PlaneRectangle]:
        """Finish the selection.

        Returns:
            The committed rectangle, or None if nothing was committed yet (no
            rectangle, no surface for it, or detection still in flight)
        """
        if not self.touch_active:
            return None

        self.poll()
        self.touch_active = False
        if self.in_flight:
            # Result still in flight; it is committed when poll() applies it.
            return None
        return self._commit()

    def poll(self) -> int:
        """Apply queued background detection results on the owning thread.

        Returns:
            Number of results applied (stale results are not counted)
        """
        applied = 0
        while True:
            try:
                generation, observations = self._results.get_nowait()
            except queue.Empty:
                break
            if generation != self.generation:
                LOGGER.debug("Discarding stale detection result (generation %d, current %d)", generation, self.generation)
                continue
            self._apply(generation, observations)
            applied += 1
        return applied

    def clear(self):
        """Drop all rectangles and outlines, and invalidate in-flight requests."""
        self.generation += 1
        self._applied_generation = self.generation
        self.touch_active = False
        self.pending = None
        self.rectangles.clear()
        self.outlines.clear()
        self._refresh_idle_message()
        LOGGER.info("Session cleared")

    def reset(self):
        """Clear everything, including the known surfaces."""
        self.registry.clear()
        self.clear()

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "RectangleSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _request_detection(self, frame: Any):
        self.generation += 1
        self.last_request_time = self.clock()
        generation = self.generation

        if self._executor is None:
            self._apply(generation, self._detect(frame))
            return

        future = self._executor.submit(self._detect, frame)
        future.add_done_callback(lambda f: self._enqueue(generation, f))

    def _detect(self, frame: Any) -> List[RectangleObservation]:
        try:
            return self.detector.detect(frame)
        except Exception as e:
            LOGGER.warning("Rectangle detection failed: %s", e)
            return []

    def _enqueue(self, generation: int, future: Future):
        # Runs on the worker thread; only hands the result over.
        observations = future.result() if not future.cancelled() else []
        self._results.put((generation, observations))

    def _apply(self, generation: int, observations: List[RectangleObservation]):
        self._applied_generation = generation
        self._discard_pending()

        if not observations:
            LOGGER.info("No rectangle detected")
            self.pending = PendingSelection(generation, None, None)
        else:
            observation = observations[0]
            self.outlines[observation.observation_id] = observation
            rectangle = try_reconstruct_rectangle(observation, self.hit_tester)
            self.pending = PendingSelection(generation, observation, rectangle)

        if not self.touch_active:
            self._commit()

    def _commit(self) -> Optional[PlaneRectangle]:
        pending, self.pending = self.pending, None
        if pending is None or pending.observation is None:
            self._set_message(Message.ERR_NO_RECT)
            return None

        self.outlines.pop(pending.observation.observation_id, None)
        if pending.rectangle is None:
            self._set_message(Message.ERR_NO_PLANE_FOR_RECT)
            return None

        self.rectangles[pending.observation.observation_id] = pending.rectangle
        self._set_message(Message.HELP_TAP_HOLD_RECT)
        LOGGER.info(
            "Rectangle placed on surface %s: %.3f x %.3f m",
            pending.rectangle.surface_id,
            pending.rectangle.width,
            pending.rectangle.height,
        )
        return pending.rectangle

    def _discard_pending(self):
        if self.pending is not None and self.pending.observation is not None:
            self.outlines.pop(self.pending.observation.observation_id, None)
        self.pending = None

    def _refresh_idle_message(self):
        if self.touch_active:
            return
        if len(self.registry) == 0:
            self._set_message(Message.HELP_FIND_SURFACE)
        elif self.message in (None, Message.HELP_FIND_SURFACE):
            self._set_message(Message.HELP_TAP_HOLD_RECT)

    def _set_message(self, message: Message):
        if message is not self.message:
            LOGGER.info("%s", message.text)
        self.message = message
