"""
Calibration Checklist - Pre-exam operator checks
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass
class CalibrationChecklist:
    """Webcam, lighting and identity checks confirmed before the exam starts."""

    webcam: bool = False
    lighting: bool = False
    identity: bool = False

    CHECKS = ("webcam", "lighting", "identity")

    def set(self, check: str, passed: bool = True):
        if check not in self.CHECKS:
            raise ValueError(f"Unknown calibration check: {check}")
        setattr(self, check, passed)
        logger.debug(f"Calibration {check} -> {passed}")

    def toggle(self, check: str) -> bool:
        self.set(check, not getattr(self, check))
        return getattr(self, check)

    @property
    def all_clear(self) -> bool:
        return self.webcam and self.lighting and self.identity

    def pending(self) -> List[str]:
        return [check for check in self.CHECKS if not getattr(self, check)]

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def reset(self):
        self.webcam = False
        self.lighting = False
        self.identity = False
