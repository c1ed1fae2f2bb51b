"""Latest-value merge of the video and telemetry sources."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np

from config.freefly import TOF_STALE_S


@dataclass(frozen=True)
class Telemetry:
    """Telemetry sample; the Free Fly core uses ``tof`` and ``height``."""

    tof: Optional[float] = None
    battery: Optional[int] = None
    height: Optional[int] = None
    pitch: Optional[int] = None
    roll: Optional[int] = None
    yaw: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Telemetry":
        return cls(
            tof=parse_tof(data.get("tof")),
            battery=data.get("battery"),
            height=data.get("height"),
            pitch=data.get("pitch"),
            roll=data.get("roll"),
            yaw=data.get("yaw"),
        )


def parse_tof(raw: Any) -> Optional[float]:
    """Normalizes a raw ToF value; missing or non-positive readings are absent."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(value) or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class Snapshot:
    """Inputs of one iteration, read without waiting for fresh data."""

    frame: Optional[np.ndarray]
    frame_seq: int
    frame_age_s: float
    tof_cm: Optional[float]
    tof_stale: bool
    height_cm: Optional[float] = None

    @property
    def tof_absent(self) -> bool:
        return self.tof_cm is None or self.tof_stale


class SensorSnapshot:
    """
    Single-consumer merge point. Producers (video pump, telemetry poller) write
    their latest value from their own threads; the loop takes a snapshot.
    """

    def __init__(self, tof_stale_s: float = TOF_STALE_S) -> None:
        self.tof_stale_s = tof_stale_s
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self._frame_seq: int = 0
        self._frame_at: Optional[float] = None
        self._telemetry = Telemetry()
        self._tof: Optional[float] = None
        self._tof_at: Optional[float] = None

    def put_frame(self, frame: Optional[np.ndarray], at: float) -> None:
        with self._lock:
            self._frame = frame
            self._frame_seq += 1
            # Undecodable frames do not restart the stall clock
            if frame is not None:
                self._frame_at = at

    def put_telemetry(self, telemetry: Telemetry, at: float) -> None:
        with self._lock:
            self._telemetry = telemetry
            if telemetry.tof is not None:
                self._tof = telemetry.tof
                self._tof_at = at

    @property
    def telemetry(self) -> Telemetry:
        with self._lock:
            return self._telemetry

    def mark_started(self, at: float) -> None:
        """Restarts the stall clock, e.g. on mode entry."""
        with self._lock:
            self._frame_at = at

    def take(self, now: float) -> Snapshot:
        with self._lock:
            frame_at = self._frame_at if self._frame_at is not None else now
            tof = self._tof
            tof_stale = self._tof_at is None or now - self._tof_at > self.tof_stale_s
            return Snapshot(
                frame=self._frame,
                frame_seq=self._frame_seq,
                frame_age_s=now - frame_at,
                tof_cm=tof,
                tof_stale=tof is None or tof_stale,
                height_cm=self._telemetry.height,
            )
