"""
Detector primitives - cooldown records, detection state and keypoint helpers
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


class DetectorKind(str, Enum):
    IDENTITY = "identity"
    OBJECTS = "objects"
    FACES = "faces"
    TALKING = "talking"
    GAZE = "gaze"


@dataclass
class Cooldown:
    """Minimum spacing between two firings of one detector."""

    period_ms: float
    last_fired: Optional[float] = None

    def ready(self, now: float) -> bool:
        if self.last_fired is None:
            return True
        return now - self.last_fired >= self.period_ms

    def fire(self, now: float):
        self.last_fired = now

    def reset(self):
        self.last_fired = None


@dataclass
class DetectionState:
    """
    Strike counter, cooldowns and slow-batch timer of the detection bank.

    Owned by one session; never read by the ledger or the API layer.
    """

    cooldowns: Dict[DetectorKind, Cooldown]
    slow_pass: Cooldown
    mismatch_strikes: int = 0

    @classmethod
    def create(
        cls,
        cooldown_periods: Dict[DetectorKind, float],
        slow_pass_interval_ms: float
    ) -> "DetectionState":
        return cls(
            cooldowns={kind: Cooldown(period) for kind, period in cooldown_periods.items()},
            slow_pass=Cooldown(slow_pass_interval_ms)
        )

    def cooldown(self, kind: DetectorKind) -> Cooldown:
        return self.cooldowns[kind]

    def reset(self):
        self.mismatch_strikes = 0
        self.slow_pass.reset()
        for cooldown in self.cooldowns.values():
            cooldown.reset()


def keypoint_xy(keypoints: Sequence[Any], index: int) -> Optional[Tuple[float, float]]:
    """
    Read one landmark as (x, y).

    Accepts {"x": .., "y": ..} mappings, objects with x/y attributes,
    and (x, y[, z]) sequences. Returns None if the index is out of range.
    """
    if keypoints is None or index >= len(keypoints):
        return None

    point = keypoints[index]

    if isinstance(point, dict):
        return (float(point["x"]), float(point["y"]))
    if hasattr(point, "x") and hasattr(point, "y"):
        return (float(point.x), float(point.y))
    return (float(point[0]), float(point[1]))
