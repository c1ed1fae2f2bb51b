"""Per-frame scalar features for obstacle classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Final, Optional, Tuple

import cv2
import numpy as np

from config.drone import VIDEO_FPS
from config.freefly import ANALYSIS_WIDTH, CANNY_HIGH, CANNY_LOW, LOOMING_WINDOW

from .errors import AnalysisFailed

logger = logging.getLogger(__name__)

# Farneback parameters tuned for a 320px wide analysis frame
FARNEBACK_PARAMS: Final[dict] = dict(
    pyr_scale=0.5,
    levels=3,
    winsize=15,
    iterations=3,
    poly_n=5,
    poly_sigma=1.2,
    flags=0,
)


@dataclass(frozen=True)
class FrameFeatures:
    """Scalar features of one analyzed frame."""

    edge_density: float = 0.0
    texture_score: float = 0.0
    flow_looming: float = 0.0
    flow_divergence: float = 0.0
    # Right minus left / bottom minus top edge density, in [-100, 100]
    edge_balance_x: float = 0.0
    edge_balance_y: float = 0.0
    stale: bool = False


def to_analysis_gray(frame: np.ndarray, width: int = ANALYSIS_WIDTH) -> np.ndarray:
    """Converts a BGR or gray frame to a fixed-width grayscale image.

    Raises AnalysisFailed for frames that cannot be decoded into an image.
    """
    if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
        raise AnalysisFailed("Empty frame")
    if frame.ndim == 3 and frame.shape[2] == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    elif frame.ndim == 2:
        gray = frame
    else:
        raise AnalysisFailed(f"Unsupported frame shape {frame.shape}")

    if gray.dtype != np.uint8:
        gray = cv2.convertScaleAbs(gray)

    h, w = gray.shape[:2]
    if h < 8 or w < 8:
        raise AnalysisFailed(f"Frame too small {frame.shape}")
    height = max(8, int(round(h * width / w)))
    return cv2.resize(gray, (width, height), interpolation=cv2.INTER_AREA)


def edge_map(gray: np.ndarray) -> np.ndarray:
    """Binary Canny edge map of a blurred gray frame."""
    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    return cv2.Canny(blurred, CANNY_LOW, CANNY_HIGH)


def edge_density(edges: np.ndarray) -> float:
    """Percentage of edge pixels in ``edges``."""
    if edges.size == 0:
        return 0.0
    return 100.0 * float(np.count_nonzero(edges)) / float(edges.size)


def edge_balance(edges: np.ndarray) -> Tuple[float, float]:
    """Edge density differences (right - left, bottom - top)."""
    h, w = edges.shape[:2]
    left, right = edges[:, : w // 2], edges[:, w // 2 :]
    top, bottom = edges[: h // 2, :], edges[h // 2 :, :]
    return (
        edge_density(right) - edge_density(left),
        edge_density(bottom) - edge_density(top),
    )


def texture_score(gray: np.ndarray) -> float:
    """Variance of the Laplacian, a focus/sharpness measure."""
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def flow_expansion(prev_gray: np.ndarray, gray: np.ndarray, fps: float = VIDEO_FPS) -> Tuple[float, float]:
    """Looming and divergence from dense optical flow between two frames.

    Looming is the mean outward radial flow (px/frame) inside the central
    window. Divergence is the relative expansion rate of the whole field,
    mean radial flow over mean radius, scaled to 1/s. Both are clamped at 0
    so contraction reads as no approach.
    """
    flow = cv2.calcOpticalFlowFarneback(prev_gray, gray, None, **FARNEBACK_PARAMS)
    fx = flow[..., 0]
    fy = flow[..., 1]

    h, w = gray.shape[:2]
    ys, xs = np.mgrid[0:h, 0:w].astype(np.float32)
    rx = xs - (w - 1) / 2.0
    ry = ys - (h - 1) / 2.0
    radius = np.sqrt(rx * rx + ry * ry)
    radius[radius < 1.0] = 1.0

    radial = (fx * rx + fy * ry) / radius

    half_w = max(1, int(w * LOOMING_WINDOW / 2))
    half_h = max(1, int(h * LOOMING_WINDOW / 2))
    cy, cx = h // 2, w // 2
    window = radial[cy - half_h : cy + half_h, cx - half_w : cx + half_w]

    looming = max(0.0, float(np.mean(window)))
    divergence = max(0.0, float(np.mean(radial) / np.mean(radius)) * float(fps))
    return looming, divergence


class FrameAnalyzer:
    """
    Computes FrameFeatures for consecutive frames of one Free Fly session.
    Keeps the previous analysis frame for optical flow.
    """

    def __init__(self, fps: float = VIDEO_FPS) -> None:
        self.fps = fps
        self.prev_gray: Optional[np.ndarray] = None
        self.last_features = FrameFeatures()
        self.consecutive_failures: int = 0

    def reset(self) -> None:
        """Drops flow history and failure count."""
        self.prev_gray = None
        self.last_features = FrameFeatures()
        self.consecutive_failures = 0

    def _compute(self, frame: np.ndarray) -> Tuple[FrameFeatures, np.ndarray]:
        try:
            gray = to_analysis_gray(frame)
            edges = edge_map(gray)
            balance_x, balance_y = edge_balance(edges)
            texture = texture_score(gray)

            looming = divergence = 0.0
            if self.prev_gray is not None and self.prev_gray.shape == gray.shape:
                looming, divergence = flow_expansion(self.prev_gray, gray, self.fps)
        except cv2.error as e:
            raise AnalysisFailed(str(e)) from e

        features = FrameFeatures(
            edge_density=edge_density(edges),
            texture_score=texture,
            flow_looming=looming,
            flow_divergence=divergence,
            edge_balance_x=balance_x,
            edge_balance_y=balance_y,
        )
        return features, gray

    def analyze(self, frame: Optional[np.ndarray]) -> FrameFeatures:
        """Analyzes one frame; on failure reuses the last features marked stale."""
        try:
            features, gray = self._compute(frame)
        except AnalysisFailed as e:
            self.consecutive_failures += 1
            logger.warning("Frame analysis failed (%d in a row): %s", self.consecutive_failures, e)
            return replace(self.last_features, stale=True)

        self.consecutive_failures = 0
        self.prev_gray = gray
        self.last_features = features
        return features
