"""Free Fly obstacle-avoidance tuning constants."""

from __future__ import annotations
from typing import Final

# --- Edge density bands (percent of edge pixels) ---
EDGE_LOW: Final[float] = 28.0
EDGE_HIGH: Final[float] = 42.0
EDGE_BLOCK: Final[float] = 55.0

# --- Optical flow collision signatures ---
FLOW_LOOMING: Final[float] = 2.2  # px/frame at ANALYSIS_WIDTH
FLOW_DIVERGENCE: Final[float] = 0.30  # 1/s

# --- RC magnitude caps per maneuver ---
MOVE_FB: Final[int] = 14
MOVE_UD: Final[int] = 18
MOVE_YW: Final[int] = 28

# --- Timing / debouncing ---
NUDGE_T: Final[float] = 0.45  # seconds
FORWARD_CLEAR_FRAMES: Final[int] = 4
MOVE_GRACE_S: Final[float] = 1.0

# --- Sensing validity ---
TEXTURE_MIN: Final[float] = 25.0
TOF_NEAR_CM: Final[float] = 35.0
TOF_STALE_S: Final[float] = 0.5
DEGRADED_FAILURE_LIMIT: Final[int] = 5

# --- Frame analysis ---
ANALYSIS_WIDTH: Final[int] = 320
CANNY_LOW: Final[int] = 50
CANNY_HIGH: Final[int] = 150
# Fraction of the frame (per axis) treated as the "ahead" window for looming
LOOMING_WINDOW: Final[float] = 0.5

# --- Debug channel ---
DEBUG_CHANNEL_SIZE: Final[int] = 64
