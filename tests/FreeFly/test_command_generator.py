import sys
import itertools
import pytest
from dataclasses import replace
from pathlib import Path

# --- SETUP PATHS ---
if __name__ == "__main__":
    sys.path.append(str(Path(__file__).parents[2]))

from FreeFly.command_generator import (
    RCCommand,
    altitude_guard,
    bounded,
    clamp,
    generate_command,
    hold_command,
)
from FreeFly.navigation import NavDecision, Nudge
from FreeFly.obstacle_classifier import Thresholds
from FreeFly.States import Evade, Hazard, Move, MoveDirection, Scan


@pytest.fixture
def thresholds():
    return Thresholds.from_config()


def within_caps(command: RCCommand, thresholds: Thresholds) -> bool:
    return (
        all(-100 <= v <= 100 for v in command.as_tuple())
        and abs(command.left_right) <= thresholds.move_fb
        and abs(command.forward_back) <= thresholds.move_fb
        and abs(command.up_down) <= thresholds.move_ud
        and abs(command.yaw) <= thresholds.move_yaw
    )


class TestClamp:

    def test_clamp_to_cap(self):
        assert clamp(50, 14) == 14
        assert clamp(-50, 14) == -14
        assert clamp(7, 14) == 7

    def test_clamp_never_exceeds_rc_range(self):
        assert clamp(1000, 500) == 100
        assert clamp(-1000, 500) == -100


class TestGenerateCommand:

    def test_scan_yaws(self, thresholds):
        decision = NavDecision(state=Scan(), hazard=Hazard.CLEAR, yaw_sign=-1)
        assert generate_command(decision, thresholds) == RCCommand(yaw=-28)

    def test_move_forward(self, thresholds):
        decision = NavDecision(state=Move(MoveDirection.FORWARD), hazard=Hazard.CLEAR, yaw_sign=0)
        assert generate_command(decision, thresholds) == RCCommand(forward_back=14)

    def test_move_forward_with_nudge(self, thresholds):
        decision = NavDecision(
            state=Move(MoveDirection.FORWARD),
            hazard=Hazard.CAUTION,
            nudge=Nudge(left_right=-1),
            yaw_sign=0,
        )
        assert generate_command(decision, thresholds) == RCCommand(left_right=-14, forward_back=7)

    def test_vertical_nudge(self, thresholds):
        decision = NavDecision(
            state=Move(MoveDirection.FORWARD),
            hazard=Hazard.CAUTION,
            nudge=Nudge(up_down=1),
            yaw_sign=0,
        )
        assert generate_command(decision, thresholds).up_down == 18

    @pytest.mark.parametrize("direction, expected", [
        (MoveDirection.LEFT, RCCommand(left_right=-14)),
        (MoveDirection.RIGHT, RCCommand(left_right=14)),
        (MoveDirection.UP, RCCommand(up_down=18)),
        (MoveDirection.DOWN, RCCommand(up_down=-18)),
    ])
    def test_move_directions(self, thresholds, direction, expected):
        decision = NavDecision(state=Move(direction), hazard=Hazard.CLEAR, yaw_sign=0)
        assert generate_command(decision, thresholds) == expected

    def test_evade_backs_off_and_turns(self, thresholds):
        decision = NavDecision(state=Evade(), hazard=Hazard.BLOCK, yaw_sign=1)
        assert generate_command(decision, thresholds) == RCCommand(forward_back=-14, yaw=28)

    def test_hold_is_zero(self, thresholds):
        decision = NavDecision(state=Evade(), hazard=Hazard.BLOCK, yaw_sign=1, hold=True)
        assert generate_command(decision, thresholds) == hold_command() == RCCommand(0, 0, 0, 0)

    def test_unknown_state_is_rejected(self, thresholds):
        with pytest.raises(TypeError):
            generate_command(NavDecision(state="hover", hazard=Hazard.CLEAR), thresholds)

    def test_every_decision_is_bounded(self, thresholds):
        """Exhaustive sweep over states, nudges and out-of-range yaw signs."""
        states = [Scan(), Evade()] + [Move(d) for d in MoveDirection]
        nudges = [None, Nudge(1, 0), Nudge(-1, 0), Nudge(0, 1), Nudge(0, -1), Nudge(5, -5)]
        for state, nudge, yaw_sign, hold in itertools.product(states, nudges, [-3, -1, 0, 1, 3], [False, True]):
            decision = NavDecision(state=state, hazard=Hazard.CAUTION, nudge=nudge, yaw_sign=yaw_sign, hold=hold)
            assert within_caps(generate_command(decision, thresholds), thresholds)

    def test_oversized_caps_still_respect_rc_range(self, thresholds):
        wide = replace(thresholds, move_fb=400, move_ud=400, move_yaw=400)
        decision = NavDecision(state=Move(MoveDirection.FORWARD), hazard=Hazard.CAUTION, nudge=Nudge(1, 1))
        command = generate_command(decision, wide)
        assert all(-100 <= v <= 100 for v in command.as_tuple())


def test_bounded_clamps_each_axis(thresholds):
    command = bounded(RCCommand(99, -99, 99, -99), thresholds)
    assert command == RCCommand(14, -14, 18, -28)


class TestAltitudeBand:

    @pytest.fixture
    def descend_nudge(self):
        return NavDecision(
            state=Move(MoveDirection.FORWARD),
            hazard=Hazard.CAUTION,
            nudge=Nudge(up_down=-1),
            yaw_sign=0,
        )

    @pytest.fixture
    def climb_nudge(self):
        return NavDecision(
            state=Move(MoveDirection.FORWARD),
            hazard=Hazard.CAUTION,
            nudge=Nudge(up_down=1),
            yaw_sign=0,
        )

    def test_no_descent_below_floor(self, thresholds, descend_nudge):
        command = generate_command(descend_nudge, thresholds, height_cm=50)
        assert command.up_down >= 0
        assert command.forward_back == 7

    def test_no_climb_above_ceiling(self, thresholds, climb_nudge):
        command = generate_command(climb_nudge, thresholds, height_cm=130)
        assert command.up_down <= 0

    def test_recovering_toward_band_is_allowed(self, thresholds, descend_nudge, climb_nudge):
        assert generate_command(climb_nudge, thresholds, height_cm=50).up_down == 18
        assert generate_command(descend_nudge, thresholds, height_cm=130).up_down == -18

    @pytest.mark.parametrize("height", [None, 60, 90, 120])
    def test_inside_band_or_unknown_height_is_untouched(self, thresholds, descend_nudge, height):
        assert generate_command(descend_nudge, thresholds, height_cm=height).up_down == -18

    def test_move_down_stops_at_floor(self, thresholds):
        decision = NavDecision(state=Move(MoveDirection.DOWN), hazard=Hazard.CLEAR)
        assert generate_command(decision, thresholds, height_cm=40) == RCCommand()

    def test_guard_keeps_other_axes(self):
        command = RCCommand(5, 6, 18, 7)
        assert altitude_guard(command, 200) == RCCommand(5, 6, 0, 7)
        assert altitude_guard(command, 100) is command


def run_tests_directly() -> None:
    """Entry point for direct script execution."""
    print(f"--- Running tests for {Path(__file__).name} ---")
    exit_code = pytest.main(["-v", "-p", "no:cacheprovider", __file__])
    sys.exit(exit_code)

if __name__ == "__main__":
    run_tests_directly()
