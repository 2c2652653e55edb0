# config.py
"""Typed configuration blobs for the whole system."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from hat_follow.live_tuning import validate_overrides


# --------------------- Follower ---------------------
@dataclass
class FollowerSettings:
    # Radius (px) around the center that counts as "centered"
    center_threshold: float = 5.0
    # Minimum L1 change between commands before a new move is issued
    min_change: float = 0.3
    # Settle time, in frames, the marker should be centered within
    frames_to_be_centered: float = 10.0
    # Experimental: subtract the filter's velocity estimate (damping)
    counteract_velocity: bool = False
    save_to_file: Optional[str] = None
    detection_log: Optional[str] = None
    show_video: bool = True
    draw_detection: bool = False
    draw_filter: bool = False

    @classmethod
    def default(cls) -> "FollowerSettings":
        """Show video, no save, no drawing."""
        return cls()

    @classmethod
    def debug(cls) -> "FollowerSettings":
        """Show video, save to ``test.mp4``, draw every marker."""
        return cls(
            save_to_file="test.mp4",
            show_video=True,
            draw_detection=True,
            draw_filter=True,
        )

    @classmethod
    def silent(cls) -> "FollowerSettings":
        """No video, no save, no drawing."""
        return cls(show_video=False)

    def apply_overrides(self, params: Mapping[str, Any]) -> bool:
        """
        Push live-tuned values in; returns True if any field changed.
        Entries that fail validation are logged and leave the field as is.
        """
        changed = False
        for key, value in validate_overrides(params).items():
            if getattr(self, key) != value:
                setattr(self, key, value)
                changed = True
        return changed


# --------------------- Detector ---------------------
@dataclass
class DetectorConfig:
    min_area_ratio: float = 0.5
    max_area_ratio: float = 1.5
    certainty_scale: float = 500.0   # px² of area error that still earns 1.0


# ---------------------- Filter ----------------------
@dataclass
class FilterConfig:
    max_frames_unknown: int = 15
    # Kalman variant only; tuned for per-frame pixel tracking
    measurement_noise_std: float = 3.0        # px
    process_noise_std: float = 2.0            # px/frame²
    initial_velocity_error_std: float = 10.0  # px/frame


# ---------------------- Serial ----------------------
@dataclass
class SerialConfig:
    port: str = "/dev/ttyACM0"
    baudrate: int = 115_200
    timeout: float = 10.0
    write_timeout: Optional[float] = None
    video_url: str = "udp://0.0.0.0:11111"
    video_width: int = 960
    video_height: int = 720
    kv: float = 0.02   # (px / frame) → command range
    ka: float = 0.8    # (rad / frame) → command range


# ---------------------- Export ----------------------
@dataclass
class ExportConfig:
    fps: float = 30.0
    fourcc_str: str = "mp4v"
    queue_size: int = 256
