"""Hazard assessment from frame features and the ToF range reading."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from config import freefly

from .frame_analyzer import FrameFeatures
from .States import Hazard


@dataclass(frozen=True)
class Thresholds:
    """Immutable tuning values, snapshotted once per session."""

    edge_low: float
    edge_high: float
    edge_block: float
    flow_looming: float
    flow_divergence: float
    move_fb: int
    move_ud: int
    move_yaw: int
    nudge_duration_s: float
    forward_clear_frames: int
    texture_min: float
    tof_near_cm: float
    move_grace_s: float
    degraded_failure_limit: int

    @classmethod
    def from_config(cls) -> "Thresholds":
        return cls(
            edge_low=freefly.EDGE_LOW,
            edge_high=freefly.EDGE_HIGH,
            edge_block=freefly.EDGE_BLOCK,
            flow_looming=freefly.FLOW_LOOMING,
            flow_divergence=freefly.FLOW_DIVERGENCE,
            move_fb=freefly.MOVE_FB,
            move_ud=freefly.MOVE_UD,
            move_yaw=freefly.MOVE_YW,
            nudge_duration_s=freefly.NUDGE_T,
            forward_clear_frames=freefly.FORWARD_CLEAR_FRAMES,
            texture_min=freefly.TEXTURE_MIN,
            tof_near_cm=freefly.TOF_NEAR_CM,
            move_grace_s=freefly.MOVE_GRACE_S,
            degraded_failure_limit=freefly.DEGRADED_FAILURE_LIMIT,
        )


@dataclass(frozen=True)
class Assessment:
    """Hazard level plus the scalars it was derived from."""

    hazard: Hazard
    features: FrameFeatures
    tof_cm: Optional[float]


def classify(features: FrameFeatures, tof_cm: Optional[float], thresholds: Thresholds) -> Assessment:
    """
    Classifies one iteration's surroundings. First matching rule wins:

    1. ToF closer than the near-field cutoff -> BLOCK
    2. Edge density at block level -> BLOCK
    3. Looming or divergence over threshold (fresh frames only) -> BLOCK
    4. Edge density at the high band -> CAUTION
    5. Edge density at the low band on a textured frame -> CAUTION
    6. CLEAR
    """
    textured = features.texture_score >= thresholds.texture_min

    if tof_cm is not None and tof_cm < thresholds.tof_near_cm:
        hazard = Hazard.BLOCK
    elif features.edge_density >= thresholds.edge_block:
        hazard = Hazard.BLOCK
    elif not features.stale and (
        features.flow_looming >= thresholds.flow_looming
        or features.flow_divergence >= thresholds.flow_divergence
    ):
        hazard = Hazard.BLOCK
    elif features.edge_density >= thresholds.edge_high:
        hazard = Hazard.CAUTION
    elif features.edge_density >= thresholds.edge_low and textured:
        hazard = Hazard.CAUTION
    else:
        hazard = Hazard.CLEAR

    return Assessment(hazard=hazard, features=features, tof_cm=tof_cm)


def degrade(assessment: Assessment, tof_absent: bool, stale: bool) -> Assessment:
    """Treats CLEAR as CAUTION when ToF is missing or the frame is stale."""
    if assessment.hazard is Hazard.CLEAR and (tof_absent or stale):
        return replace(assessment, hazard=Hazard.CAUTION)
    return assessment


def is_looming(features: FrameFeatures, thresholds: Thresholds) -> bool:
    return features.flow_looming >= thresholds.flow_looming
