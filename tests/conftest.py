"""
Pytest Configuration for ExamGuard Tests
"""
import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient


class FakeClock:
    """Manually advanced monotonic clock (milliseconds)"""

    def __init__(self, start: float = 10_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class FakeWallClock:
    """Wall clock that moves in lockstep with a FakeClock"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.origin = datetime(2024, 5, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.origin + timedelta(milliseconds=self.clock.now)


class StaticFrameSource:
    """Returns the same frame on every read"""

    def __init__(self, frame="frame"):
        self.frame = frame

    def read(self):
        return self.frame


class ScriptedEmbeddingModel:
    """Returns whatever embedding is currently set"""

    def __init__(self, embedding=None):
        self.embedding = embedding if embedding is not None else [1.0, 0.0, 0.0]
        self.calls = 0

    def predict(self, frame):
        self.calls += 1
        if isinstance(self.embedding, Exception):
            raise self.embedding
        return self.embedding


class ScriptedObjectDetector:
    def __init__(self, detections=None):
        self.detections = detections or []
        self.calls = 0

    async def detect(self, frame):
        self.calls += 1
        return self.detections


class ScriptedFaceDetector:
    def __init__(self, faces=None):
        self.faces = faces if faces is not None else [{"box": [0, 0, 10, 10]}]
        self.calls = 0

    def estimate_faces(self, frame):
        self.calls += 1
        if isinstance(self.faces, Exception):
            raise self.faces
        return self.faces


class ScriptedLandmarkDetector:
    def __init__(self, landmarks=None):
        self.landmarks = landmarks if landmarks is not None else []
        self.calls = 0

    async def estimate_faces(self, frame):
        self.calls += 1
        return self.landmarks


def make_keypoints(lip_gap: float = 2.0, iris_x: float = 15.0):
    """
    478 face-mesh keypoints with a controllable lip gap and iris position.

    Eye corners sit at x=10 (outer, 33) and x=20 (inner, 133), so
    iris_x=15 is a centered gaze (ratio 0.5).
    """
    keypoints = [{"x": 0.0, "y": 0.0} for _ in range(478)]
    keypoints[13] = {"x": 50.0, "y": 100.0}
    keypoints[14] = {"x": 50.0, "y": 100.0 + lip_gap}
    keypoints[33] = {"x": 10.0, "y": 40.0}
    keypoints[133] = {"x": 20.0, "y": 40.0}
    keypoints[468] = {"x": iris_x, "y": 40.0}
    return keypoints


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_clock(clock):
    return FakeWallClock(clock)


@pytest.fixture
def keypoints():
    return make_keypoints


@pytest.fixture
def capabilities():
    """Ready capability set with a calm, single-face scene"""
    from examguard.proctor.capabilities import CapabilitySet

    return CapabilitySet(
        frame_source=StaticFrameSource(),
        embedding_model=ScriptedEmbeddingModel(),
        object_detector=ScriptedObjectDetector(),
        face_detector=ScriptedFaceDetector(),
        landmark_detector=ScriptedLandmarkDetector([{"keypoints": make_keypoints()}])
    )


@pytest.fixture
def session(clock, wall_clock, capabilities):
    """Session armed and awaiting a baseline"""
    from examguard.proctor.session import ProctorSession

    proctor_session = ProctorSession(
        assessment_id="assessment-1",
        student_id="student-1",
        clock=clock,
        wall_clock=wall_clock
    )
    proctor_session.attach_capabilities(capabilities)
    return proctor_session


@pytest.fixture
def app(monkeypatch):
    """FastAPI app with stopped sessions cleaned up immediately"""
    from examguard.config import settings
    from examguard.main import app as fastapi_app
    from examguard.proctor import api

    monkeypatch.setattr(settings, "SESSION_RETENTION_SECONDS", 0)
    api._sessions.clear()
    api._frame_sources.clear()
    yield fastapi_app
    api._sessions.clear()
    api._frame_sources.clear()


@pytest.fixture
def client(app):
    """FastAPI test client"""
    return TestClient(app)
