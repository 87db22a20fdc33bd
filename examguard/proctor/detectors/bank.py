"""
Detection Bank - Runs the independent detectors and collects their incidents

The identity check belongs to the fast path (every tick). Objects, face
count, talking and gaze form the slow batch. Each detector call is isolated:
one failing detector is logged and skipped without affecting the others.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..ledger import Incident
from .base import DetectionState, DetectorKind
from .face_counter import FaceCountDetector
from .face_verifier import IdentityMismatchDetector
from .gaze_tracker import GazeTracker
from .object_detector import ProhibitedObjectDetector
from .talking_detector import TalkingDetector

logger = logging.getLogger(__name__)


@dataclass
class DetectionSnapshot:
    """
    Raw detections available for one slow-batch pass.

    A field is None when its capability is missing or failed this tick.
    """
    objects: Optional[List[Dict[str, Any]]] = None
    faces: Optional[List[Any]] = None
    landmarks: Optional[List[Any]] = None


@dataclass
class BatchResult:
    """Per-detector results and the incidents they raised."""
    results: Dict[str, Dict[str, Any]]
    incidents: List[Incident]


def first_face_keypoints(landmarks: Optional[List[Any]]) -> Optional[Sequence[Any]]:
    """Keypoints of the first face in a landmark result set"""
    if not landmarks:
        return None
    face = landmarks[0]
    if isinstance(face, dict):
        return face.get("keypoints")
    return getattr(face, "keypoints", None)


class DetectionBank:
    """
    The set of detectors evaluated by the surveillance loop.

    Detectors carry configuration only; all mutable state lives in the
    DetectionState passed into every call.
    """

    def __init__(
        self,
        identity: Optional[IdentityMismatchDetector] = None,
        objects: Optional[ProhibitedObjectDetector] = None,
        faces: Optional[FaceCountDetector] = None,
        talking: Optional[TalkingDetector] = None,
        gaze: Optional[GazeTracker] = None,
        cooldown_periods: Optional[Dict[DetectorKind, float]] = None,
        slow_pass_interval_ms: float = 500
    ):
        self.identity = identity or IdentityMismatchDetector()
        self.objects = objects or ProhibitedObjectDetector()
        self.faces = faces or FaceCountDetector()
        self.talking = talking or TalkingDetector()
        self.gaze = gaze or GazeTracker()

        self.cooldown_periods = {
            DetectorKind.IDENTITY: IdentityMismatchDetector.DEFAULT_COOLDOWN_MS,
            DetectorKind.TALKING: TalkingDetector.DEFAULT_COOLDOWN_MS,
            DetectorKind.GAZE: GazeTracker.DEFAULT_COOLDOWN_MS
        }
        if cooldown_periods:
            self.cooldown_periods.update(cooldown_periods)

        self.slow_pass_interval_ms = slow_pass_interval_ms

    @classmethod
    def from_settings(cls, settings) -> "DetectionBank":
        """Build a bank from a Settings object"""
        return cls(
            identity=IdentityMismatchDetector(
                threshold=settings.SIMILARITY_THRESHOLD,
                strike_limit=settings.MISMATCH_STRIKE_LIMIT
            ),
            objects=ProhibitedObjectDetector(settings.FORBIDDEN_OBJECTS),
            faces=FaceCountDetector(),
            talking=TalkingDetector(threshold=settings.LIP_DISTANCE_THRESHOLD),
            gaze=GazeTracker(
                min_ratio=settings.GAZE_RATIO_MIN,
                max_ratio=settings.GAZE_RATIO_MAX
            ),
            cooldown_periods={
                DetectorKind.IDENTITY: settings.MISMATCH_COOLDOWN_MS,
                DetectorKind.TALKING: settings.TALKING_COOLDOWN_MS,
                DetectorKind.GAZE: settings.GAZE_COOLDOWN_MS
            },
            slow_pass_interval_ms=settings.SLOW_PASS_INTERVAL_MS
        )

    def new_state(self) -> DetectionState:
        """Fresh strike/cooldown state for a new session"""
        return DetectionState.create(self.cooldown_periods, self.slow_pass_interval_ms)

    def run_identity(
        self,
        state: DetectionState,
        baseline: Sequence[float],
        embedding: Sequence[float],
        now: float
    ) -> Optional[Dict[str, Any]]:
        """Fast path: identity check. Returns None if the detector failed."""
        return self._isolated(
            DetectorKind.IDENTITY,
            self.identity.evaluate, state, baseline, embedding, now
        )

    def run_slow_batch(
        self,
        state: DetectionState,
        snapshot: DetectionSnapshot,
        now: float
    ) -> BatchResult:
        """
        Slow batch: objects, face count, talking and gaze.

        Args:
            state: Session detection state
            snapshot: Raw detections gathered for this pass
            now: Monotonic time in milliseconds

        Returns:
            BatchResult with each detector's output and the raised incidents
        """
        results: Dict[str, Dict[str, Any]] = {}

        if snapshot.objects is not None:
            results[DetectorKind.OBJECTS.value] = self._isolated(
                DetectorKind.OBJECTS, self.objects.evaluate, snapshot.objects
            )

        if snapshot.faces is not None:
            results[DetectorKind.FACES.value] = self._isolated(
                DetectorKind.FACES, self.faces.evaluate, snapshot.faces
            )

        keypoints = None
        try:
            keypoints = first_face_keypoints(snapshot.landmarks)
        except Exception as e:
            logger.warning(f"Malformed landmark result: {e}")

        if keypoints is not None:
            results[DetectorKind.TALKING.value] = self._isolated(
                DetectorKind.TALKING, self.talking.evaluate, state, keypoints, now
            )
            results[DetectorKind.GAZE.value] = self._isolated(
                DetectorKind.GAZE, self.gaze.evaluate, state, keypoints, now
            )

        # Drop failed detectors
        results = {name: result for name, result in results.items() if result is not None}

        incidents = [
            result["incident"] for result in results.values()
            if result.get("incident") is not None
        ]

        return BatchResult(results=results, incidents=incidents)

    def _isolated(self, kind: DetectorKind, fn: Callable[..., Dict[str, Any]], *args) -> Optional[Dict[str, Any]]:
        try:
            return fn(*args)
        except Exception as e:
            logger.warning(f"{kind.value} detector error: {e}")
            return None
