"""
Main entry point for rectanchor.

Runs the rectangle anchoring pipeline on a synthetic scene: a sheet of paper
on a tracked floor is rendered, detected, hit-tested against the floor and
reconstructed in 3D, then compared with the ground truth.

Usage:
    python -m rectanchor.main                     # Run with defaults
    python -m rectanchor.main --yaw 20            # Rotate the paper 20 degrees
    python -m rectanchor.main -o overlay.png      # Save the rendered overlay
    python -m rectanchor.main --verbose           # Enable debug logging
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time

import cv2

from .detection import RectangleDetector
from .hit_test import HitTestAdapter, RaycastHitTester
from .overlay import OverlayRenderer
from .session import RectangleSession
from .surfaces import SurfaceRegistry
from .synthetic import SyntheticScene
from .utils import get_config, setup_logging, validate_config

LOGGER = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="rectanchor - anchor detected rectangles to tracked surfaces",
    )
    parser.add_argument("--config", "-c", help="Path to a JSON configuration file")
    parser.add_argument("--yaw", type=float, default=None, help="Rectangle yaw in degrees")
    parser.add_argument("--output", "-o", help="Write the overlay frame to this image file")
    parser.add_argument(
        "--background",
        action="store_true",
        help="Run detection on a background worker",
    )
    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    return parser.parse_args(argv)


def run(config, output_path=None, timeout: float = 5.0) -> int:
    """Run the synthetic pipeline once and report the reconstruction."""
    scene = SyntheticScene.from_config(config)
    hit_cfg = config.get("hit_test", {})

    registry = SurfaceRegistry()
    hit_tester = HitTestAdapter(
        RaycastHitTester(
            registry=registry,
            calibration=scene.calibration,
            camera_pose=scene.camera_pose,
            image_size=scene.config.image_size,
            min_distance=hit_cfg.get("min_distance", 1e-3),
        ),
        sort_by_distance=hit_cfg.get("sort_by_distance", True),
    )

    with RectangleSession(
        detector=RectangleDetector(config.get("detection", {})),
        hit_tester=hit_tester,
        registry=registry,
        config=config.get("session", {}),
    ) as session:
        floor = scene.floor_surface()
        session.on_surface_added(floor.surface_id, floor.extent, floor.transform, floor.center)

        frame = scene.render()
        session.touch_began(frame)
        rectangle = session.touch_ended()

        deadline = time.monotonic() + timeout
        while session.in_flight:
            if session.poll() == 0:
                if time.monotonic() > deadline:
                    LOGGER.error("Timed out waiting for detection")
                    break
                time.sleep(0.01)
        if rectangle is None and session.rectangles:
            rectangle = next(iter(session.rectangles.values()))

        if output_path:
            renderer = OverlayRenderer(config.get("overlay", {}))
            renderer.initialize(scene.calibration)
            overlay = renderer.render(
                frame,
                pose=scene.camera_pose,
                surfaces=session.registry,
                rectangles=session.rectangles.values(),
                outlines=session.outlines.values(),
                message=session.message,
            )
            if cv2.imwrite(output_path, overlay):
                LOGGER.info("Overlay written to %s", output_path)
            else:
                LOGGER.error("Failed to write overlay to %s", output_path)

        if rectangle is None:
            print(session.message.text if session.message else "No rectangle found")
            return 1

    truth = scene.ground_truth
    print("Reconstructed rectangle:")
    print(f"  center: ({rectangle.center.x:.3f}, {rectangle.center.y:.3f}, {rectangle.center.z:.3f}) m")
    print(f"  size:   {rectangle.width:.3f} x {rectangle.height:.3f} m")
    print(f"  yaw:    {math.degrees(rectangle.yaw):.1f} deg")
    print("Ground truth:")
    print(f"  center: ({truth.center.x:.3f}, {truth.center.y:.3f}, {truth.center.z:.3f}) m")
    print(f"  size:   {truth.width:.3f} x {truth.height:.3f} m")
    print(f"  yaw:    {math.degrees(truth.yaw):.1f} deg")
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level=log_level)

    config = get_config(args.config)
    if args.yaw is not None:
        config["scene"]["rect_yaw"] = math.radians(args.yaw)
    if args.background:
        config["session"]["background_detection"] = True
    if not validate_config(config):
        sys.exit(2)

    try:
        status = run(config, output_path=args.output)
    except Exception as e:
        LOGGER.exception("Application error: %s", e)
        sys.exit(1)

    sys.exit(status)


if __name__ == "__main__":
    main()
