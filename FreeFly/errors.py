"""Free Fly error taxonomy."""


class FreeFlyError(Exception):
    """Base class for Free Fly loop conditions."""

    condition = "error"


class AnalysisFailed(FreeFlyError):
    """A frame could not be analyzed; previous features are reused."""

    condition = "analysis_failed"


class SensorAbsent(FreeFlyError):
    """No valid ToF reading for this tick."""

    condition = "sensor_absent"


class DegradedSensing(FreeFlyError):
    """Frame analysis kept failing; behavior is forced conservative."""

    condition = "degraded_sensing"


class VideoStall(FreeFlyError):
    """No new frame arrived within the stall window. Fatal to the session."""

    condition = "video_stall"

    def __init__(self, waited_s: float) -> None:
        super().__init__(f"No video frame for {waited_s:.1f}s")
        self.waited_s = waited_s
