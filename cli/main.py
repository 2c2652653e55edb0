# main.py
"""
Entry-point for the hat-following drone.

Live-tuning
-----------
While the program is running you can edit the ``--params`` JSON file
(``follower_params.json`` by default) and the new values for
``center_threshold``, ``min_change``, ``frames_to_be_centered`` and
``counteract_velocity`` take effect on the very next frame.  See
``hat_follow/live_tuning.py`` for details.

Without ``--port`` no drone is flown: the video named in the hat file is
replayed through a :class:`~hat_follow.controllers.MockController`.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from hat_follow.config import FilterConfig, FollowerSettings, SerialConfig
from hat_follow.controllers import Controller, MockController
from hat_follow.detector import NaiveDetector
from hat_follow.filters import Filter, KalmanMemoryFilter, MemoryFilter
from hat_follow.follower import HatFollower
from hat_follow.hat import HatFileError, read_hat_file
from hat_follow.live_tuning import RuntimeParamWatcher
from hat_follow.serial_controller import SerialController

log = logging.getLogger("hat_follow")

_MODES = {
    "default": FollowerSettings.default,
    "debug": FollowerSettings.debug,
    "silent": FollowerSettings.silent,
}


# ────────────────────────────────────────────────────────────────────────────
#   A R G U M E N T S
# ────────────────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hat-follow",
        description="Follow a colored hat with a drone (or replay a video).",
    )
    p.add_argument("hat_file", help="four-line hat descriptor file")
    p.add_argument("--mode", choices=sorted(_MODES), default="default")
    p.add_argument("--save", metavar="PATH", help="record the annotated video")
    p.add_argument("--no-show", action="store_true", help="do not open a video window")
    p.add_argument("--detection-log", metavar="PATH",
                   help="write 1/0 per frame depending on whether the hat was found")

    p.add_argument("--filter", choices=("memory", "kalman"), default="memory")
    p.add_argument("--max-frames-unknown", type=int, default=FilterConfig.max_frames_unknown,
                   help="frames a lost hat is remembered for")

    p.add_argument("--port", help="serial port of the flight-controller bridge")
    p.add_argument("--video-url", default=SerialConfig.video_url,
                   help="drone video stream (with --port)")
    p.add_argument("--width", type=int, default=1280, help="replay width (without --port)")
    p.add_argument("--height", type=int, default=720, help="replay height (without --port)")

    p.add_argument("--params", default="follower_params.json", metavar="JSON",
                   help="live-tuning parameter file")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def _settings(args: argparse.Namespace) -> FollowerSettings:
    settings = _MODES[args.mode]()
    if args.save:
        settings.save_to_file = args.save
    if args.no_show:
        settings.show_video = False
    if args.detection_log:
        settings.detection_log = args.detection_log
    return settings


def _filter(args: argparse.Namespace) -> Filter:
    if args.filter == "kalman":
        return KalmanMemoryFilter(FilterConfig(max_frames_unknown=args.max_frames_unknown))
    return MemoryFilter(args.max_frames_unknown)


def _controller(args: argparse.Namespace, video: str) -> Controller:
    if args.port:
        return SerialController(SerialConfig(port=args.port, video_url=args.video_url))
    return MockController(video, args.width, args.height)


# ────────────────────────────────────────────────────────────────────────────
#   M A I N
# ────────────────────────────────────────────────────────────────────────────
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(message)s",
    )

    print("Initializing Hat-Follow System…")
    print(f"Hint: edit '{args.params}' at any time to tweak parameters.\n")

    try:
        video, hat = read_hat_file(args.hat_file)
    except HatFileError as exc:
        log.error("Bad hat file: %s", exc)
        return 2

    settings = _settings(args)
    controller = _controller(args, video)
    filter_ = _filter(args)

    # ------------------------ Banner ----------------------
    print(
        f"Hat: Lab {hat.color_low.as_tuple()}..{hat.color_high.as_tuple()}, "
        f"area={hat.size_avg:.0f}px²"
    )
    print(f"Controller: {controller!r}, video={controller.get_opencv_url()}")
    print(
        f"Follower: mode={args.mode}, threshold={settings.center_threshold}px, "
        f"min_change={settings.min_change}, frames={settings.frames_to_be_centered}, "
        f"filter={type(filter_).__name__}({filter_.max_frames_unknown})"
    )
    if settings.save_to_file:
        print(f"Recording to {settings.save_to_file}")

    # ------------------------ Run -------------------------
    follower = HatFollower(
        NaiveDetector(hat),
        controller,
        filter_,
        settings,
        param_watcher=RuntimeParamWatcher(args.params),
    )
    follower.run()
    print("Main program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
