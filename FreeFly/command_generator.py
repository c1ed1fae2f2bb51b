"""Maps navigation decisions to bounded RC deltas."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from config.drone import ALTITUDE_MAX, ALTITUDE_MIN, RC_MAX, RC_MIN

from .navigation import NavDecision
from .obstacle_classifier import Thresholds
from .States import Evade, Move, MoveDirection, Scan, unknown_state


@dataclass(frozen=True)
class RCCommand:
    """One RC control sample, axes in ``send_rc_control`` order."""

    left_right: int = 0
    forward_back: int = 0
    up_down: int = 0
    yaw: int = 0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.left_right, self.forward_back, self.up_down, self.yaw


def hold_command() -> RCCommand:
    """Zero deltas: hover in place."""
    return RCCommand()


def clamp(value: float, cap: int) -> int:
    """Limits ``value`` to +-cap and to the RC range."""
    limit = max(0, min(abs(int(cap)), RC_MAX, -RC_MIN))
    return int(max(-limit, min(limit, round(value))))


def bounded(command: RCCommand, thresholds: Thresholds) -> RCCommand:
    """Clamps every axis of ``command`` to its maneuver cap."""
    return RCCommand(
        left_right=clamp(command.left_right, thresholds.move_fb),
        forward_back=clamp(command.forward_back, thresholds.move_fb),
        up_down=clamp(command.up_down, thresholds.move_ud),
        yaw=clamp(command.yaw, thresholds.move_yaw),
    )


def altitude_guard(command: RCCommand, height_cm: Optional[float]) -> RCCommand:
    """Drops vertical motion that would leave the altitude band.

    Below ALTITUDE_MIN descending is cancelled, above ALTITUDE_MAX climbing is.
    An unknown height leaves the command untouched.
    """
    if height_cm is None:
        return command
    if height_cm < ALTITUDE_MIN and command.up_down < 0:
        return replace(command, up_down=0)
    if height_cm > ALTITUDE_MAX and command.up_down > 0:
        return replace(command, up_down=0)
    return command


def _move_command(decision: NavDecision, direction: MoveDirection, thresholds: Thresholds) -> RCCommand:
    fb_speed = thresholds.move_fb
    ud_speed = thresholds.move_ud

    if direction is MoveDirection.FORWARD:
        command = RCCommand(forward_back=fb_speed)
    elif direction is MoveDirection.LEFT:
        command = RCCommand(left_right=-fb_speed)
    elif direction is MoveDirection.RIGHT:
        command = RCCommand(left_right=fb_speed)
    elif direction is MoveDirection.UP:
        command = RCCommand(up_down=ud_speed)
    elif direction is MoveDirection.DOWN:
        command = RCCommand(up_down=-ud_speed)
    else:
        raise ValueError(f"Unhandled move direction: {direction!r}")

    nudge = decision.nudge
    if nudge is not None:
        # Slow down while sidestepping
        command = RCCommand(
            left_right=command.left_right + nudge.left_right * fb_speed,
            forward_back=command.forward_back // 2,
            up_down=command.up_down + nudge.up_down * ud_speed,
            yaw=command.yaw,
        )
    return command


def generate_command(
    decision: NavDecision,
    thresholds: Thresholds,
    height_cm: Optional[float] = None,
) -> RCCommand:
    """Builds the RC command for ``decision``; always within bounds and the altitude band."""
    if decision.hold:
        return hold_command()

    state = decision.state
    if isinstance(state, Scan):
        command = RCCommand(yaw=decision.yaw_sign * thresholds.move_yaw)
    elif isinstance(state, Move):
        command = _move_command(decision, state.direction, thresholds)
    elif isinstance(state, Evade):
        command = RCCommand(
            forward_back=-thresholds.move_fb,
            yaw=decision.yaw_sign * thresholds.move_yaw,
        )
    else:
        raise unknown_state(state)

    return altitude_guard(bounded(command, thresholds), height_cm)
