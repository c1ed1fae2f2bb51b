"""Drone link, video and safety configuration constants."""

from __future__ import annotations
from typing import Final

# --- RC control limits ---
RC_MIN: Final[int] = -100
RC_MAX: Final[int] = 100

# --- Video ---
VIDEO_FPS: Final[int] = 30
VIDEO_WIDTH: Final[int] = 960
VIDEO_HEIGHT: Final[int] = 720
VIDEO_STALL_TIMEOUT_S: Final[float] = 8.0

# --- Telemetry ---
TELEMETRY_POLL_S: Final[float] = 0.1

# --- Battery thresholds (percent) ---
BATTERY_CRITICAL: Final[int] = 15
BATTERY_WARNING: Final[int] = 30

# --- Loop pacing ---
IDLE_SLEEP_S: Final[float] = 0.005

# --- Altitude band (cm) ---
ALTITUDE_MIN: Final[int] = 60
ALTITUDE_MAX: Final[int] = 120
