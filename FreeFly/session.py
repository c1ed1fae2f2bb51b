"""One Free Fly session: analyzer -> classifier -> navigation -> command."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np

from config.drone import VIDEO_STALL_TIMEOUT_S

from .command_generator import RCCommand, generate_command, hold_command
from .debug_emitter import DebugEmitter, DebugRecord
from .errors import AnalysisFailed, DegradedSensing, SensorAbsent, VideoStall
from .frame_analyzer import FrameAnalyzer
from .navigation import NavigationStateMachine
from .obstacle_classifier import Assessment, Thresholds, classify, degrade
from .sensor_snapshot import Snapshot
from .States import Hazard, NavState, Scan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationResult:
    """Everything one iteration produced."""

    command: RCCommand
    record: DebugRecord
    state: NavState
    hazard: Hazard
    conditions: Tuple[str, ...] = ()


class FreeFlySession:
    """
    Owns the navigation state, counters and flow history of one Free Fly
    session. ``step`` always returns exactly one command and one debug record.
    """

    def __init__(
        self,
        thresholds: Optional[Thresholds] = None,
        emitter: Optional[DebugEmitter] = None,
        analyzer: Optional[FrameAnalyzer] = None,
        stall_timeout_s: float = VIDEO_STALL_TIMEOUT_S,
    ) -> None:
        self.thresholds = thresholds if thresholds is not None else Thresholds.from_config()
        self.emitter = emitter if emitter is not None else DebugEmitter(self.thresholds)
        self.analyzer = analyzer if analyzer is not None else FrameAnalyzer()
        self.stall_timeout_s = stall_timeout_s

        self.navigator: Optional[NavigationStateMachine] = None
        self.stall_error: Optional[VideoStall] = None

    @property
    def active(self) -> bool:
        return self.navigator is not None

    @property
    def stalled(self) -> bool:
        return self.stall_error is not None

    @property
    def state(self) -> NavState:
        return self.navigator.state if self.navigator is not None else Scan()

    def enter(self, now: float) -> None:
        """Starts a fresh session in Scan."""
        self.analyzer.reset()
        self.navigator = NavigationStateMachine(self.thresholds, started_at=now)
        self.stall_error = None
        logger.info("Free Fly session started")

    def exit(self) -> None:
        """Tears down navigation state; further steps only hold."""
        if self.navigator is not None:
            logger.info("Free Fly session ended in %s", self.navigator.state.mode)
        self.navigator = None

    def _hold(self, tof_cm: Optional[float], conditions: Tuple[str, ...]) -> IterationResult:
        assessment = Assessment(
            hazard=Hazard.CAUTION,
            features=replace(self.analyzer.last_features, stale=True),
            tof_cm=tof_cm,
        )
        state = self.state
        record = self.emitter.emit(state.mode, assessment)
        return IterationResult(
            command=hold_command(),
            record=record,
            state=state,
            hazard=assessment.hazard,
            conditions=conditions,
        )

    def _step(
        self,
        frame: Optional[np.ndarray],
        tof_cm: Optional[float],
        now: float,
        frame_age_s: float,
        height_cm: Optional[float],
    ) -> IterationResult:
        if self.stall_error is not None:
            return self._hold(tof_cm, (VideoStall.condition,))
        if self.navigator is None:
            return self._hold(tof_cm, ())

        if frame_age_s > self.stall_timeout_s:
            self.stall_error = VideoStall(frame_age_s)
            logger.error("%s, holding", self.stall_error)
            return self._hold(tof_cm, (VideoStall.condition,))

        conditions = []
        features = self.analyzer.analyze(frame)
        if features.stale:
            conditions.append(AnalysisFailed.condition)
        degraded = self.analyzer.consecutive_failures >= self.thresholds.degraded_failure_limit
        if degraded:
            conditions.append(DegradedSensing.condition)
        if tof_cm is None:
            conditions.append(SensorAbsent.condition)

        assessment = classify(features, tof_cm, self.thresholds)
        assessment = degrade(assessment, tof_absent=tof_cm is None, stale=features.stale)

        decision = self.navigator.update(assessment.hazard, features, now, degraded=degraded)
        command = generate_command(decision, self.thresholds, height_cm)
        record = self.emitter.emit(decision.state.mode, assessment)

        return IterationResult(
            command=command,
            record=record,
            state=decision.state,
            hazard=assessment.hazard,
            conditions=tuple(conditions),
        )

    def step(
        self,
        frame: Optional[np.ndarray],
        tof_cm: Optional[float],
        now: float,
        frame_age_s: float = 0.0,
        height_cm: Optional[float] = None,
    ) -> IterationResult:
        """Runs one iteration; failures inside it degrade to a hold command."""
        try:
            return self._step(frame, tof_cm, now, frame_age_s, height_cm)
        except Exception:
            logger.exception("Free Fly iteration failed, holding")
            return self._hold(tof_cm, ("iteration_failed",))

    def step_snapshot(self, snapshot: Snapshot, now: float) -> IterationResult:
        tof_cm = None if snapshot.tof_absent else snapshot.tof_cm
        return self.step(
            snapshot.frame,
            tof_cm,
            now,
            frame_age_s=snapshot.frame_age_s,
            height_cm=snapshot.height_cm,
        )
