# hat_follow/__init__.py
"""Hat-following drone package – re-export high-level API."""
from .follower import HatFollower                       # noqa: F401
from .config import (                                   # noqa: F401
    FollowerSettings, DetectorConfig, FilterConfig,
    SerialConfig, ExportConfig,
)
from .controllers import Controller, MockController     # noqa: F401
from .detector import Detector, NaiveDetector           # noqa: F401
from .filters import Filter, MemoryFilter, KalmanMemoryFilter  # noqa: F401
from .hat import Hat, HatFileError, LabColor, read_hat_file    # noqa: F401
