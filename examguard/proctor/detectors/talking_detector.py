"""
Talking Detector - Detects an open mouth from face-mesh lip landmarks
"""

import logging
from typing import Dict, Any, Sequence

from ..ledger import Incident, Severity
from .base import DetectionState, DetectorKind, keypoint_xy

logger = logging.getLogger(__name__)


class TalkingDetector:
    """
    Measures the vertical gap between the inner upper and lower lip.

    Uses face-mesh indices 13 (upper lip) and 14 (lower lip).
    """

    VIOLATION_TYPE = "TALKING_DETECTED"

    UPPER_LIP = 13
    LOWER_LIP = 14

    DEFAULT_THRESHOLD = 5.0  # pixels
    DEFAULT_COOLDOWN_MS = 2000

    kind = DetectorKind.TALKING

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def evaluate(self, state: DetectionState, keypoints: Sequence[Any], now: float) -> Dict[str, Any]:
        """
        Args:
            state: Session detection state
            keypoints: Landmarks of the first detected face
            now: Monotonic time in milliseconds

        Returns:
            dict with lip_distance (None without landmarks), is_talking and incident
        """
        upper = keypoint_xy(keypoints, self.UPPER_LIP)
        lower = keypoint_xy(keypoints, self.LOWER_LIP)

        if upper is None or lower is None:
            return {"lip_distance": None, "is_talking": False, "incident": None}

        lip_distance = abs(upper[1] - lower[1])
        is_talking = lip_distance > self.threshold

        incident = None
        cooldown = state.cooldown(self.kind)
        if is_talking and cooldown.ready(now):
            incident = Incident(self.VIOLATION_TYPE, Severity.WARNING)
            cooldown.fire(now)

        return {
            "lip_distance": lip_distance,
            "is_talking": is_talking,
            "incident": incident
        }
