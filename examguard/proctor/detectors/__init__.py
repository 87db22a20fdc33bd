"""Detector modules for proctoring"""

from .base import Cooldown, DetectionState, DetectorKind
from .face_verifier import IdentityMismatchDetector
from .object_detector import ProhibitedObjectDetector
from .face_counter import FaceCountDetector
from .talking_detector import TalkingDetector
from .gaze_tracker import GazeTracker
from .bank import DetectionBank, DetectionSnapshot, BatchResult

__all__ = [
    "Cooldown",
    "DetectionState",
    "DetectorKind",
    "IdentityMismatchDetector",
    "ProhibitedObjectDetector",
    "FaceCountDetector",
    "TalkingDetector",
    "GazeTracker",
    "DetectionBank",
    "DetectionSnapshot",
    "BatchResult"
]
