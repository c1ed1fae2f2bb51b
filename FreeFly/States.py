"""State, hazard and direction types used by the Free Fly loop."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Union

class Hazard(Enum):
    """Discrete obstacle assessment for one iteration."""
    CLEAR = auto()
    CAUTION = auto()
    BLOCK = auto()

class MoveDirection(Enum):
    """Heading advanced along while in Move."""
    FORWARD = auto()
    LEFT = auto()
    RIGHT = auto()
    UP = auto()
    DOWN = auto()


@dataclass(frozen=True)
class Scan:
    """Rotate in place looking for a clear heading."""
    mode = "scan"


@dataclass(frozen=True)
class Move:
    """Advance along ``direction``."""
    direction: MoveDirection = MoveDirection.FORWARD
    mode = "move"


@dataclass(frozen=True)
class Evade:
    """Back off until the hazard clears."""
    mode = "evade"


NavState = Union[Scan, Move, Evade]
NAV_STATES = (Scan, Move, Evade)


def unknown_state(state: object) -> TypeError:
    """Error for a value outside the closed NavState variant."""
    return TypeError(f"Unhandled navigation state: {state!r}")
