"""Scan / Move / Evade navigation state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .frame_analyzer import FrameFeatures
from .obstacle_classifier import Thresholds
from .States import Evade, Hazard, Move, MoveDirection, NavState, Scan, unknown_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Nudge:
    """Unit direction of a corrective sidestep; each axis is -1, 0 or 1."""

    left_right: int = 0
    up_down: int = 0


@dataclass
class SessionCounters:
    """Mutable run state owned by one NavigationStateMachine."""

    clear_frames: int = 0
    state_entered_at: float = 0.0
    last_nudge_at: float = float("-inf")
    nudge: Optional[Nudge] = None
    caution_since: Optional[float] = None
    scan_yaw_sign: int = 1
    evade_yaw_sign: int = 1


@dataclass(frozen=True)
class NavDecision:
    """Outcome of one state machine update, input to the command generator."""

    state: NavState
    hazard: Hazard
    nudge: Optional[Nudge] = None
    yaw_sign: int = 1
    hold: bool = False


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def nudge_away_from(features: FrameFeatures) -> Nudge:
    """Sidestep away from the denser half of the frame along its dominant axis."""
    bx, by = features.edge_balance_x, features.edge_balance_y
    if abs(bx) >= abs(by):
        # Denser on the right -> go left
        return Nudge(left_right=-_sign(bx) or 1)
    # Denser at the bottom -> go up
    return Nudge(up_down=_sign(by))


@dataclass
class NavigationStateMachine:
    """
    Holds the single active NavState of a Free Fly session and applies the
    transition rules. Time is passed in explicitly so replays are deterministic.
    """

    thresholds: Thresholds
    started_at: float = 0.0
    state: NavState = field(default_factory=Scan)
    counters: SessionCounters = field(default_factory=SessionCounters)

    def __post_init__(self) -> None:
        self.counters.state_entered_at = self.started_at

    def time_in_state(self, now: float) -> float:
        return now - self.counters.state_entered_at

    def _enter(self, state: NavState, now: float) -> None:
        logger.info("Navigation %s -> %s", self.state.mode, state.mode)
        self.state = state
        self.counters.state_entered_at = now
        self.counters.clear_frames = 0
        self.counters.caution_since = None
        self.counters.nudge = None

    def _active_nudge(self, now: float) -> Optional[Nudge]:
        c = self.counters
        if c.nudge is not None and now - c.last_nudge_at >= self.thresholds.nudge_duration_s:
            c.nudge = None
        return c.nudge

    def _update_scan(self, hazard: Hazard, now: float) -> None:
        if hazard is Hazard.CLEAR:
            self.counters.clear_frames += 1
        else:
            self.counters.clear_frames = 0

        if self.counters.clear_frames >= self.thresholds.forward_clear_frames:
            self._enter(Move(MoveDirection.FORWARD), now)

    def _update_move(self, hazard: Hazard, features: FrameFeatures, now: float) -> None:
        c = self.counters
        if hazard is Hazard.CLEAR:
            c.caution_since = None
            return

        if c.caution_since is None:
            c.caution_since = now
        if now - c.caution_since >= self.thresholds.move_grace_s:
            self._enter(Scan(), now)
            return

        if self._active_nudge(now) is None and now - c.last_nudge_at >= self.thresholds.nudge_duration_s:
            c.nudge = nudge_away_from(features)
            c.last_nudge_at = now
            logger.debug("Nudge %s", c.nudge)

    def _update_evade(self, hazard: Hazard, now: float) -> None:
        if hazard is Hazard.CLEAR:
            self.counters.scan_yaw_sign = self.counters.evade_yaw_sign
            self._enter(Scan(), now)

    def update(self, hazard: Hazard, features: FrameFeatures, now: float, degraded: bool = False) -> NavDecision:
        """Advances the machine by one iteration and returns the decision."""
        # Turn away from the denser side
        turn = -_sign(features.edge_balance_x)
        if turn:
            self.counters.evade_yaw_sign = turn

        if hazard is Hazard.BLOCK or degraded:
            if not isinstance(self.state, Evade):
                self._enter(Evade(), now)
            self.counters.nudge = None
        elif isinstance(self.state, Scan):
            self._update_scan(hazard, now)
        elif isinstance(self.state, Move):
            self._update_move(hazard, features, now)
        elif isinstance(self.state, Evade):
            self._update_evade(hazard, now)
        else:
            raise unknown_state(self.state)

        state = self.state
        if isinstance(state, Scan):
            yaw_sign = self.counters.scan_yaw_sign
        elif isinstance(state, Evade):
            yaw_sign = self.counters.evade_yaw_sign
        elif isinstance(state, Move):
            yaw_sign = 0
        else:
            raise unknown_state(state)

        hold = degraded and self.time_in_state(now) >= self.thresholds.nudge_duration_s
        return NavDecision(
            state=state,
            hazard=hazard,
            nudge=self._active_nudge(now) if isinstance(state, Move) else None,
            yaw_sign=yaw_sign,
            hold=hold,
        )
