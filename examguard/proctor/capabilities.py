"""
Capabilities - Contracts for the external models the engine consumes

The engine never runs detection itself. It needs a frame source and four
model objects: an embedding model, an object detector, a face detector and
a face-mesh landmark detector. Model methods may be sync or async.

Also provides precomputed adapters so a client that already ran the models
(e.g. in the browser) can push per-frame detections over HTTP.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import CapabilityLoadError

logger = logging.getLogger(__name__)


async def resolve(value: Any) -> Any:
    """Await the value if a capability returned an awaitable"""
    if inspect.isawaitable(value):
        return await value
    return value


# ============== Capability Contracts ==============

class FrameSource(ABC):
    """Provides the current video frame, or None while no frame is ready."""

    @abstractmethod
    def read(self) -> Optional[Any]:
        ...


class EmbeddingModel(ABC):
    @abstractmethod
    def predict(self, frame: Any) -> Sequence[float]:
        """Embedding of the face in frame (may be a coroutine)"""


class ObjectDetector(ABC):
    @abstractmethod
    def detect(self, frame: Any) -> List[Dict[str, Any]]:
        """Detections as dicts with "class" and "confidence" (may be a coroutine)"""


class FaceDetector(ABC):
    @abstractmethod
    def estimate_faces(self, frame: Any) -> List[Any]:
        """Detected faces; only the count is consumed (may be a coroutine)"""


class LandmarkDetector(ABC):
    @abstractmethod
    def estimate_faces(self, frame: Any) -> List[Any]:
        """
        Face-mesh results, each with "keypoints": indexed {x, y} points
        (may be a coroutine). Indices 13/14 (lips) and 33/133/468
        (eye corners, iris) follow the 478-point face-mesh scheme.
        """


@dataclass
class CapabilitySet:
    """The loaded capabilities of one session."""
    frame_source: Optional[FrameSource] = None
    embedding_model: Optional[EmbeddingModel] = None
    object_detector: Optional[ObjectDetector] = None
    face_detector: Optional[FaceDetector] = None
    landmark_detector: Optional[LandmarkDetector] = None

    def is_ready(self) -> bool:
        """True when the frame source and all four models are present"""
        return all(
            capability is not None for capability in (
                self.frame_source,
                self.embedding_model,
                self.object_detector,
                self.face_detector,
                self.landmark_detector
            )
        )

    def status(self) -> Dict[str, bool]:
        return {
            "frame_source": self.frame_source is not None,
            "embedding_model": self.embedding_model is not None,
            "object_detector": self.object_detector is not None,
            "face_detector": self.face_detector is not None,
            "landmark_detector": self.landmark_detector is not None
        }


CapabilityFactory = Callable[[], Any]

MODEL_CAPABILITIES = ("embedding_model", "object_detector", "face_detector", "landmark_detector")


async def load_capabilities(
    frame_source: FrameSource,
    factories: Dict[str, CapabilityFactory]
) -> CapabilitySet:
    """
    Load all four models concurrently.

    Args:
        frame_source: Source of video frames
        factories: Maps each name in MODEL_CAPABILITIES to a zero-argument
                   callable returning the model (or an awaitable of it)

    Returns:
        A ready CapabilitySet

    Raises:
        CapabilityLoadError: If a factory is missing or any load fails
    """
    for name in MODEL_CAPABILITIES:
        if name not in factories:
            raise CapabilityLoadError(name, "no loader configured")

    logger.info("Loading proctoring models...")

    async def _load(name: str) -> Any:
        return await resolve(factories[name]())

    results = await asyncio.gather(
        *(_load(name) for name in MODEL_CAPABILITIES),
        return_exceptions=True
    )

    loaded: Dict[str, Any] = {}
    for name, result in zip(MODEL_CAPABILITIES, results):
        if isinstance(result, BaseException):
            raise CapabilityLoadError(name, str(result)) from result
        loaded[name] = result

    logger.info("All proctoring models loaded")

    return CapabilitySet(frame_source=frame_source, **loaded)


# ============== Precomputed Adapters ==============

@dataclass
class FrameDetections:
    """
    A frame whose detections were computed by the client.

    Fields left as None mean the client did not run that model.
    """
    embedding: Optional[List[float]] = None
    objects: Optional[List[Dict[str, Any]]] = None
    faces: Optional[List[Any]] = None
    landmarks: Optional[List[Dict[str, Any]]] = None


class PushFrameSource(FrameSource):
    """Holds the latest pushed frame and hands it out exactly once."""

    def __init__(self):
        self._frame: Optional[Any] = None

    def push(self, frame: Any):
        self._frame = frame

    def read(self) -> Optional[Any]:
        frame, self._frame = self._frame, None
        return frame


class PrecomputedEmbeddingModel(EmbeddingModel):
    def predict(self, frame: FrameDetections) -> Sequence[float]:
        if frame.embedding is None:
            raise ValueError("Frame carries no embedding")
        return frame.embedding


class PrecomputedObjectDetector(ObjectDetector):
    def detect(self, frame: FrameDetections) -> List[Dict[str, Any]]:
        if frame.objects is None:
            raise ValueError("Frame carries no object detections")
        return frame.objects


class PrecomputedFaceDetector(FaceDetector):
    def estimate_faces(self, frame: FrameDetections) -> List[Any]:
        if frame.faces is None:
            raise ValueError("Frame carries no face detections")
        return frame.faces


class PrecomputedLandmarkDetector(LandmarkDetector):
    def estimate_faces(self, frame: FrameDetections) -> List[Any]:
        if frame.landmarks is None:
            raise ValueError("Frame carries no landmarks")
        return frame.landmarks


def precomputed_capabilities(frame_source: Optional[PushFrameSource] = None) -> CapabilitySet:
    """Capability set backed by client-side detections"""
    return CapabilitySet(
        frame_source=frame_source or PushFrameSource(),
        embedding_model=PrecomputedEmbeddingModel(),
        object_detector=PrecomputedObjectDetector(),
        face_detector=PrecomputedFaceDetector(),
        landmark_detector=PrecomputedLandmarkDetector()
    )
