"""
Face Counter - Flags an empty frame or more than one person
"""

from typing import Dict, Any, Sized

from ..ledger import Incident, Severity
from .base import DetectorKind


class FaceCountDetector:
    """Exactly one face is expected in frame."""

    kind = DetectorKind.FACES

    def evaluate(self, faces: Sized) -> Dict[str, Any]:
        num_faces = len(faces) if faces is not None else 0

        incident = None
        if num_faces > 1:
            incident = Incident("MULTIPLE_FACES_DETECTED", Severity.CRITICAL)
        elif num_faces == 0:
            incident = Incident("NO_FACE_IN_FRAME", Severity.CRITICAL)

        return {
            "num_faces": num_faces,
            "face_present": num_faces > 0,
            "incident": incident
        }
