# live_tuning.py
"""
In-flight tuning of the follower's control gains.

The operator keeps a small JSON object next to the program, e.g.::

    {"center_threshold": 8, "min_change": 0.2,
     "frames_to_be_centered": 12, "counteract_velocity": false}

and edits it while the drone is flying.  Once per frame the follower calls
:meth:`RuntimeParamWatcher.poll`; when the file has changed it gets back only
the keys listed in :data:`TUNABLE`, already converted to the type of the
matching :class:`~hat_follow.config.FollowerSettings` field.  A value that
does not convert is reported and dropped, the rest of the file still applies.
"""
from __future__ import annotations

import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

log = logging.getLogger(__name__)

Overrides = Dict[str, Any]


# ---------------------- Converters ----------------------
def _number(value: Any) -> float:
    # JSON true/false would otherwise pass as 1/0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


def _non_negative(value: Any) -> float:
    number = _number(value)
    if number < 0:
        raise ValueError(f"must be >= 0, got {number}")
    return number


def _positive(value: Any) -> float:
    number = _number(value)
    if number <= 0:
        raise ValueError(f"must be > 0, got {number}")
    return number


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise TypeError(f"expected true or false, got {value!r}")


TUNABLE: Dict[str, Callable[[Any], Any]] = {
    "center_threshold": _non_negative,
    "min_change": _non_negative,
    "frames_to_be_centered": _positive,
    "counteract_velocity": _flag,
}


def validate_overrides(raw: Mapping[str, Any], origin: str = "live params") -> Overrides:
    """Keep the tunable keys whose values convert; warn about everything else."""
    valid: Overrides = {}
    for key, value in raw.items():
        convert = TUNABLE.get(key)
        if convert is None:
            log.warning("%s: unknown key %r ignored", origin, key)
            continue
        try:
            valid[key] = convert(value)
        except (TypeError, ValueError) as exc:
            log.warning("%s: keeping current %s (%s)", origin, key, exc)
    return valid


# ---------------------- Watcher ----------------------
class RuntimeParamWatcher:
    """Hands the follower validated gain overrides whenever the file changes."""

    def __init__(self, path: str | Path = "follower_params.json") -> None:
        self.path = Path(path).expanduser()
        # (mtime_ns, size) of the last version read; None while the file is absent
        self._stamp: Optional[Tuple[int, int]] = None
        self.overrides: Overrides = {}
        log.info("Live tuning from %s", self.path)

    def _read(self) -> Optional[Mapping[str, Any]]:
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except json.JSONDecodeError as exc:
            log.warning("JSON error in %s: %s", self.path, exc)
            return None
        except OSError as exc:
            log.warning("Failed to read %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            log.warning("%s must hold a JSON object, got %s", self.path, type(data).__name__)
            return None
        return data

    def poll(self) -> Optional[Overrides]:
        """
        Return the validated overrides if the file changed since the last
        poll, else None.  A broken file is reported once per edit and
        leaves the previous overrides in place.
        """
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            if self._stamp is not None:
                log.warning("%s was removed, keeping current gains", self.path)
                self._stamp = None
            return None

        stamp = (st.st_mtime_ns, st.st_size)
        if stamp == self._stamp:
            return None
        self._stamp = stamp

        raw = self._read()
        if raw is None:
            return None
        self.overrides = validate_overrides(raw, self.path.name)
        return self.overrides
