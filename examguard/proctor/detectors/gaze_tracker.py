"""
Gaze Tracker - Tracks horizontal gaze from face-mesh iris landmarks
"""

import logging
from typing import Dict, Any, Sequence

from ..ledger import Incident, Severity
from .base import DetectionState, DetectorKind, keypoint_xy

logger = logging.getLogger(__name__)


class GazeTracker:
    """
    Tracks gaze direction by locating the iris between the eye corners.

    ratio = |iris.x - outer.x| / |inner.x - outer.x|

    0.5 is centered. Ratios outside [min_ratio, max_ratio] count as looking
    away from the screen. Mirrored video flips left and right but not the
    distance from center, so the check is symmetric.
    """

    VIOLATION_TYPE = "LOOKING_AWAY_FROM_SCREEN"

    # Face-mesh indices (left eye)
    OUTER_CORNER = 33
    INNER_CORNER = 133
    IRIS_CENTER = 468

    DEFAULT_MIN_RATIO = 0.30
    DEFAULT_MAX_RATIO = 0.70
    DEFAULT_COOLDOWN_MS = 2000

    kind = DetectorKind.GAZE

    def __init__(
        self,
        min_ratio: float = DEFAULT_MIN_RATIO,
        max_ratio: float = DEFAULT_MAX_RATIO
    ):
        self.min_ratio = min_ratio
        self.max_ratio = max_ratio

    def evaluate(self, state: DetectionState, keypoints: Sequence[Any], now: float) -> Dict[str, Any]:
        """
        Track gaze from eye landmarks.

        Args:
            state: Session detection state
            keypoints: Landmarks of the first detected face
            now: Monotonic time in milliseconds

        Returns:
            dict with:
                - gaze_direction: 'center', 'away' or 'unknown'
                - gaze_ratio: float or None when eye width is zero / landmarks missing
                - incident: Incident or None
        """
        outer = keypoint_xy(keypoints, self.OUTER_CORNER)
        inner = keypoint_xy(keypoints, self.INNER_CORNER)
        iris = keypoint_xy(keypoints, self.IRIS_CENTER)

        if outer is None or inner is None or iris is None:
            return self._default_result()

        eye_width = abs(inner[0] - outer[0])
        if eye_width <= 0:
            return self._default_result()

        iris_offset = abs(iris[0] - outer[0])
        gaze_ratio = iris_offset / eye_width

        looking_away = gaze_ratio < self.min_ratio or gaze_ratio > self.max_ratio

        incident = None
        cooldown = state.cooldown(self.kind)
        if looking_away and cooldown.ready(now):
            incident = Incident(self.VIOLATION_TYPE, Severity.WARNING)
            cooldown.fire(now)

        return {
            "gaze_direction": "away" if looking_away else "center",
            "gaze_ratio": gaze_ratio,
            "incident": incident
        }

    def _default_result(self) -> Dict[str, Any]:
        return {
            "gaze_direction": "unknown",
            "gaze_ratio": None,
            "incident": None
        }
