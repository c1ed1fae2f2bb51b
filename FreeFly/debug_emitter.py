"""Debug record packaging and fire-and-forget publication."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from config.freefly import DEBUG_CHANNEL_SIZE

from .obstacle_classifier import Assessment, Thresholds, is_looming

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebugRecord:
    """Observability snapshot of one iteration."""

    mode: str
    edge_density: float
    lap_var: float
    looming: bool
    divergence: float
    tof_cm: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        """Serializes with the UI field names."""
        return {
            "mode": self.mode,
            "edgeDensity": self.edge_density,
            "lapVar": self.lap_var,
            "looming": self.looming,
            "divergence": self.divergence,
            "tofCm": self.tof_cm,
        }


class DropOldestChannel:
    """Bounded outbound queue; a full channel discards its oldest item."""

    def __init__(self, maxlen: int = DEBUG_CHANNEL_SIZE) -> None:
        self._items: Deque[Any] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self.dropped: int = 0

    def publish(self, item: Any) -> None:
        with self._lock:
            if len(self._items) == self._items.maxlen:
                self.dropped += 1
            self._items.append(item)

    def drain(self) -> List[Any]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def latest(self) -> Optional[Any]:
        with self._lock:
            return self._items[-1] if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class DebugEmitter:
    """
    Builds one DebugRecord per iteration and hands it to the channel and any
    subscribed sinks. Publishing never raises into the control loop.
    """

    def __init__(
        self,
        thresholds: Thresholds,
        channel: Optional[DropOldestChannel] = None,
        sinks: Optional[List[Callable[[DebugRecord], None]]] = None,
    ) -> None:
        self.thresholds = thresholds
        self.channel = channel if channel is not None else DropOldestChannel()
        self.sinks: List[Callable[[DebugRecord], None]] = list(sinks or [])

    def subscribe(self, sink: Callable[[DebugRecord], None]) -> None:
        self.sinks.append(sink)

    def build(self, mode: str, assessment: Assessment) -> DebugRecord:
        features = assessment.features
        return DebugRecord(
            mode=mode,
            edge_density=features.edge_density,
            lap_var=features.texture_score,
            looming=is_looming(features, self.thresholds),
            divergence=features.flow_divergence,
            tof_cm=assessment.tof_cm,
        )

    def publish(self, record: DebugRecord) -> None:
        try:
            self.channel.publish(record)
        except Exception:
            logger.exception("Debug channel publish failed, record dropped")

        for sink in self.sinks:
            try:
                sink(record)
            except Exception:
                logger.exception("Debug sink %r failed, record dropped", sink)

    def emit(self, mode: str, assessment: Assessment) -> DebugRecord:
        record = self.build(mode, assessment)
        self.publish(record)
        return record
