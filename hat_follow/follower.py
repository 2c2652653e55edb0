# follower.py
"""Glue logic that wires video → detector → filter → drone controller."""
from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from hat_follow.camera import VideoSource, VideoSourceError
from hat_follow.common import ControlVector, DetectionResult, FilterState, clamp
from hat_follow.config import FollowerSettings
from hat_follow.controllers import Controller
from hat_follow.detector import Detector
from hat_follow.exporters import TextExporter, VideoExporter
from hat_follow.filters import Filter
from hat_follow.geometry import PointConverter
from hat_follow.live_tuning import RuntimeParamWatcher
from hat_follow.markers import MarkerDrawer

log = logging.getLogger(__name__)

WINDOW_NAME = "Image"


class HatFollower:
    """
    The main high-level orchestrator.

    Once per frame: detect, fold the detection into the filter, turn the
    estimate into a (debounced) ``move_all`` command, then draw / export /
    show.  The loop is single threaded; ``stop_event`` is polled at the top
    of every iteration.
    """

    def __init__(
        self,
        detector: Detector,
        controller: Controller,
        filter_: Filter,
        settings: Optional[FollowerSettings] = None,
        stop_event: Optional[threading.Event] = None,
        *,
        source: Optional[VideoSource] = None,
        video_exporter: Optional[VideoExporter] = None,
        text_exporter: Optional[TextExporter] = None,
        param_watcher: Optional[RuntimeParamWatcher] = None,
    ):
        self.detector = detector
        self.controller = controller
        self.filter = filter_
        self.settings = settings or FollowerSettings.default()
        self.stop_event = stop_event or threading.Event()

        self.converter = PointConverter(
            controller.get_video_width(), controller.get_video_height()
        )
        self.kv = controller.get_kv()
        self.ka = controller.get_ka()
        self.drawer = MarkerDrawer()

        # I/O collaborators; created in run() when not injected
        self.source = source
        self.video_exporter = video_exporter
        self.text_exporter = text_exporter
        self.param_watcher = param_watcher

        # Last command actually sent to the controller
        self.last_command = ControlVector()
        self.prev_angle = 0.0

        # Runtime metrics
        self.total_frames = 0
        self.commands_issued = 0
        self.detections = 0

    # ---------------------------------------------------------------------
    #                           Control law
    # ---------------------------------------------------------------------
    def _axis_speed(self, offset: float, velocity: float) -> float:
        s = self.settings
        speed = offset / s.frames_to_be_centered if abs(offset) > s.center_threshold else 0.0
        if s.counteract_velocity:
            speed -= velocity
        return clamp(speed * self.kv)

    def compute_speeds(self, state: FilterState) -> Tuple[float, float]:
        """Lateral / longitudinal commands that re-center the marker."""
        if state.position is None:
            return 0.0, 0.0
        vx, vy = state.velocity
        return (
            self._axis_speed(state.position.x, vx),
            self._axis_speed(state.position.y, vy),
        )

    def compute_turn(self, angle: float) -> float:
        return clamp((angle - self.prev_angle) * self.ka)

    def control_the_drone(self, state: FilterState) -> bool:
        """Issue ``move_all`` if the command moved far enough; True if sent."""
        vx, vy = self.compute_speeds(state)
        turn = self.compute_turn(state.angle)
        cmd = ControlVector(vx, vy, self.last_command.vertical, turn)
        if cmd.l1_distance(self.last_command) <= self.settings.min_change:
            return False

        self.controller.move_all(*cmd.as_tuple())
        log.debug("move_all(%.3f, %.3f, %.3f, %.3f)", *cmd.as_tuple())
        self.last_command = cmd
        self.prev_angle = state.angle
        self.commands_issued += 1
        return True

    # ---------------------------------------------------------------------
    #                        Drawing / export
    # ---------------------------------------------------------------------
    def _render(self, frame: np.ndarray) -> None:
        if self.settings.draw_detection:
            self.detector.draw_on_image(self.drawer)
        if self.settings.draw_filter:
            self.filter.draw_on_image(self.drawer)
        if len(self.drawer):
            self.drawer.draw_on_image(frame, self.converter)

    def _export(self, frame: np.ndarray, result: DetectionResult) -> None:
        s = self.settings
        if s.save_to_file and self.video_exporter is not None:
            self.video_exporter.write(s.save_to_file, frame)
        if s.detection_log and self.text_exporter is not None:
            self.text_exporter.write(s.detection_log, "1\n" if result.found else "0\n")

    def _show(self, frame: np.ndarray) -> None:
        cv2.imshow(WINDOW_NAME, frame)
        if cv2.waitKey(3) & 0xFF == ord("q"):
            log.info("'q' pressed, stopping")
            self.stop_event.set()

    # ---------------------------------------------------------------------
    #                          Per-frame step
    # ---------------------------------------------------------------------
    def process_frame(self, frame: np.ndarray) -> FilterState:
        result = self.detector.detect_new_position(frame, self.filter.position, self.converter)
        if result.found:
            self.detections += 1
        state = self.filter.update_estimation(result)
        self.control_the_drone(state)

        self._render(frame)
        self._export(frame, result)
        if self.settings.show_video:
            self._show(frame)
        self.total_frames += 1
        return state

    def _poll_params(self) -> None:
        if self.param_watcher is None:
            return
        overrides = self.param_watcher.poll()
        if overrides and self.settings.apply_overrides(overrides):
            log.info(
                "Live params: threshold=%.1f min_change=%.2f frames=%.1f damping=%s",
                self.settings.center_threshold,
                self.settings.min_change,
                self.settings.frames_to_be_centered,
                self.settings.counteract_velocity,
            )

    # ---------------------------------------------------------------------
    #                         Setup / teardown
    # ---------------------------------------------------------------------
    def _open_source(self) -> VideoSource:
        if self.source is None:
            self.source = VideoSource(self.controller.get_opencv_url())
        if not self.source.is_opened() and not self.source.open():
            raise VideoSourceError(f"cannot open video source {self.source.url!r}")

        w, h, _ = self.source.get_properties()
        if w and h and (w, h) != (self.converter.width, self.converter.height):
            log.warning(
                "Stream is %dx%d but controller reports %dx%d; using the latter",
                w, h, self.converter.width, self.converter.height,
            )
        return self.source

    def _open_exporters(self) -> None:
        if self.settings.save_to_file and self.video_exporter is None:
            self.video_exporter = VideoExporter()
        if self.settings.detection_log and self.text_exporter is None:
            self.text_exporter = TextExporter()

    def _cleanup(self) -> None:
        for exporter in (self.video_exporter, self.text_exporter):
            if exporter is not None:
                exporter.close()
        if self.source is not None:
            self.source.release()
        if self.settings.show_video:
            cv2.destroyAllWindows()
        log.info(
            "Exited. Frames: %d, detections: %d, commands: %d",
            self.total_frames, self.detections, self.commands_issued,
        )

    def stop(self) -> None:
        """Ask the loop to finish after the current frame."""
        self.stop_event.set()

    # ---------------------------------------------------------------------
    #                             Public run()
    # ---------------------------------------------------------------------
    def run(self) -> None:
        self.controller.init()
        try:
            self.controller.takeoff()
            source = self._open_source()
            self._open_exporters()
            log.info("Following - press 'q' in the video window or Ctrl-C to land.")

            while not self.stop_event.is_set():
                self._poll_params()
                frame = source.read()
                if frame is None:
                    log.info("End of stream")
                    break
                self.process_frame(frame)
        except KeyboardInterrupt:
            log.info("Interrupted by user")
        except Exception:
            log.exception("Follower loop failed, stopping the drone")
            self.controller.stop()
            raise
        finally:
            try:
                self.controller.land()
            finally:
                try:
                    self.controller.shutdown()
                finally:
                    self._cleanup()
