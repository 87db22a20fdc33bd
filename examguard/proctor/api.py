"""
Proctoring API - FastAPI endpoints for exam proctoring

The client runs the vision models and streams per-frame detections;
the server owns the integrity-decision engine.

Endpoints:
- POST /api/proctor/start - Start a proctoring session
- POST /api/proctor/calibration - Confirm a calibration check
- POST /api/proctor/lock-identity - Lock the identity baseline from a frame
- POST /api/proctor/stream - Evaluate one frame's detections
- POST /api/proctor/lockdown-event - Record a browser lockdown event
- POST /api/proctor/stop - End the exam and get the audit report
- POST /api/proctor/reset - Reset a session to a fresh state
- GET /api/proctor/status/{session_id} - Get session status
- GET /api/proctor/violations/{session_id} - Get the audit trail
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

from fastapi import APIRouter, HTTPException, BackgroundTasks
from pydantic import BaseModel, Field

from ..config import settings
from .capabilities import FrameDetections, PushFrameSource, precomputed_capabilities
from .context import SessionState
from .errors import CalibrationIncompleteError, SessionStateError
from .session import ProctorSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proctor", tags=["Proctoring"])

# In-memory session storage
_sessions: Dict[str, ProctorSession] = {}
_frame_sources: Dict[str, PushFrameSource] = {}


# ============== Request/Response Models ==============

class Keypoint(BaseModel):
    x: float
    y: float
    z: Optional[float] = None


class ObjectDetection(BaseModel):
    class_name: str = Field(..., alias="class", description="Detected class label")
    confidence: float = 0.0

    model_config = {"populate_by_name": True}


class LandmarkFace(BaseModel):
    keypoints: List[Keypoint]


class FramePayload(BaseModel):
    """Detections computed client-side for one video frame"""
    embedding: Optional[List[float]] = Field(None, description="Face embedding of the frame")
    objects: Optional[List[ObjectDetection]] = Field(None, description="Object detections")
    faces: Optional[List[Dict[str, Any]]] = Field(None, description="Face detections (count is used)")
    landmarks: Optional[List[LandmarkFace]] = Field(None, description="Face-mesh results")

    def to_frame(self) -> FrameDetections:
        return FrameDetections(
            embedding=self.embedding,
            objects=[
                {"class": o.class_name, "confidence": o.confidence} for o in self.objects
            ] if self.objects is not None else None,
            faces=self.faces,
            landmarks=[
                {"keypoints": [k.model_dump() for k in face.keypoints]} for face in self.landmarks
            ] if self.landmarks is not None else None
        )


class StartSessionRequest(BaseModel):
    """Request to start a proctoring session"""
    assessment_id: str = Field(..., description="ID of the assessment")
    student_id: str = Field(..., description="ID of the student")


class StartSessionResponse(BaseModel):
    session_id: str
    state: str
    message: str


class CalibrationRequest(BaseModel):
    session_id: str
    check: str = Field(..., description="webcam, lighting or identity")
    passed: bool = True


class CalibrationResponse(BaseModel):
    calibration: Dict[str, bool]
    all_clear: bool


class LockIdentityRequest(BaseModel):
    session_id: str
    frame: FramePayload


class LockIdentityResponse(BaseModel):
    locked: bool
    state: str
    message: str


class StreamFrameRequest(BaseModel):
    """Request to evaluate one webcam frame"""
    session_id: str = Field(..., description="Session ID from /start")
    frame: FramePayload


class ViolationModel(BaseModel):
    type: str
    severity: str
    time: str


class StreamFrameResponse(BaseModel):
    processed: bool
    reason: Optional[str] = None
    state: str
    match_score: float
    strikes: int
    new_violations: List[ViolationModel]
    severity_counts: Dict[str, int]


class LockdownEventRequest(BaseModel):
    session_id: str
    event: str = Field(..., description="visibilitychange, blur, keydown or contextmenu")
    key: Optional[str] = None
    ctrl_key: bool = False
    meta_key: bool = False
    hidden: bool = True


class LockdownEventResponse(BaseModel):
    recorded: bool
    violation: Optional[ViolationModel] = None


class SessionRequest(BaseModel):
    session_id: str


class AuditReportResponse(BaseModel):
    """Post-exam audit"""
    session_id: str
    assessment_id: str
    student_id: str
    state: str
    total_violations: int
    critical_count: int
    warning_count: int
    violations_by_type: Dict[str, int]
    violations: List[ViolationModel]
    final_match_score: float
    duration_seconds: float


class SessionStatusResponse(BaseModel):
    session_id: str
    state: str
    is_active: bool
    error: Optional[str] = None
    baseline_locked: bool
    match_score: float
    severity_counts: Dict[str, int]
    total_violations: int
    calibration: Dict[str, bool]
    ticks_processed: int
    duration_seconds: float


class ViolationLogResponse(BaseModel):
    session_id: str
    violations: List[ViolationModel]
    severity_counts: Dict[str, int]


# ============== Helpers ==============

def _get_session(session_id: str) -> ProctorSession:
    session = _sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _arm(session: ProctorSession):
    """Attach client-side detection capabilities to a fresh session"""
    frame_source = PushFrameSource()
    session.attach_capabilities(precomputed_capabilities(frame_source))
    _frame_sources[session.id] = frame_source


# ============== API Endpoints ==============

@router.post("/start", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest):
    """
    Start a new proctoring session.

    The session is armed immediately and waits for an identity baseline.
    """
    try:
        session = ProctorSession(
            assessment_id=request.assessment_id,
            student_id=request.student_id
        )
        _arm(session)
        _sessions[session.id] = session

        logger.info(f"Started proctoring session: {session.id}")

        return StartSessionResponse(
            session_id=session.id,
            state=session.state.value,
            message="Proctoring session started, lock identity to begin"
        )

    except Exception as e:
        logger.error(f"Failed to start proctoring session: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/calibration", response_model=CalibrationResponse)
async def update_calibration(request: CalibrationRequest):
    """Confirm or clear one pre-exam calibration check."""
    session = _get_session(request.session_id)

    try:
        session.calibration.set(request.check, request.passed)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return CalibrationResponse(
        calibration=session.calibration.as_dict(),
        all_clear=session.calibration.all_clear
    )


@router.post("/lock-identity", response_model=LockIdentityResponse)
async def lock_identity(request: LockIdentityRequest):
    """
    Lock the identity baseline from the frame's embedding.

    Starts monitoring on success.
    """
    session = _get_session(request.session_id)

    frame_source = _frame_sources.get(session.id)
    if frame_source is not None:
        frame_source.push(request.frame.to_frame())

    try:
        locked = await session.lock_baseline()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CalibrationIncompleteError as e:
        raise HTTPException(status_code=412, detail=str(e))

    return LockIdentityResponse(
        locked=locked,
        state=session.state.value,
        message="Baseline identity locked" if locked else "No usable frame, try again"
    )


@router.post("/stream", response_model=StreamFrameResponse)
async def stream_frame(request: StreamFrameRequest):
    """
    Evaluate one frame.

    Runs a surveillance tick and returns the match score and any
    violations recorded by this frame.
    """
    session = _get_session(request.session_id)

    if not session.is_active:
        raise HTTPException(status_code=409, detail=f"Session is {session.state.value}")

    frame_source = _frame_sources.get(session.id)
    if frame_source is not None:
        frame_source.push(request.frame.to_frame())

    try:
        result = await session.tick()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Frame processing error: {e}")
        raise HTTPException(status_code=500, detail=f"Frame processing error: {str(e)}")

    return StreamFrameResponse(
        processed=result["processed"],
        reason=result["reason"],
        state=session.state.value,
        match_score=result["match_score"],
        strikes=result["strikes"],
        new_violations=[ViolationModel(**v.to_dict()) for v in result["violations"]],
        severity_counts=session.severity_counts()
    )


@router.post("/lockdown-event", response_model=LockdownEventResponse)
async def record_lockdown_event(request: LockdownEventRequest):
    """
    Record a browser lockdown event.

    Called when the frontend detects a tab switch, focus loss or a
    blocked shortcut.
    """
    session = _get_session(request.session_id)

    violation = session.record_lockdown_event(
        request.event,
        key=request.key,
        ctrl_key=request.ctrl_key,
        meta_key=request.meta_key,
        hidden=request.hidden
    )

    return LockdownEventResponse(
        recorded=violation is not None,
        violation=ViolationModel(**violation.to_dict()) if violation else None
    )


@router.post("/stop", response_model=AuditReportResponse)
async def stop_session(request: SessionRequest, background_tasks: BackgroundTasks):
    """
    End the exam and return the post-exam audit.

    The session is dropped after the retention delay.
    """
    session = _get_session(request.session_id)

    report = session.end_session()
    background_tasks.add_task(_cleanup_session, request.session_id, session.ended_at)

    return AuditReportResponse(**report)


@router.post("/reset", response_model=StartSessionResponse)
async def reset_session(request: SessionRequest):
    """Discard all session state and re-arm for a new baseline."""
    session = _get_session(request.session_id)

    session.reset_session()
    _arm(session)

    return StartSessionResponse(
        session_id=session.id,
        state=session.state.value,
        message="Session reset, lock identity to begin"
    )


@router.get("/status/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(session_id: str):
    """
    Get current status of a proctoring session.
    """
    session = _get_session(session_id)
    status = session.status()
    status.pop("capabilities", None)
    return SessionStatusResponse(**status)


@router.get("/violations/{session_id}", response_model=ViolationLogResponse)
async def get_violations(session_id: str):
    """Audit trail, newest first."""
    session = _get_session(session_id)

    return ViolationLogResponse(
        session_id=session.id,
        violations=[ViolationModel(**v.to_dict()) for v in session.violation_log()],
        severity_counts=session.severity_counts()
    )


# ============== Background Tasks ==============

async def _cleanup_session(session_id: str, ended_at: datetime):
    """Drop a stopped session after the retention delay, unless it was reset since"""
    await asyncio.sleep(settings.SESSION_RETENTION_SECONDS)

    session = _sessions.get(session_id)
    if session is not None and session.state is SessionState.ENDED and session.ended_at == ended_at:
        del _sessions[session_id]
        _frame_sources.pop(session_id, None)
        logger.info(f"Cleaned up session: {session_id}")


# ============== Health Check ==============

@router.get("/health")
async def health_check():
    """Health check for proctoring module"""
    return {
        "status": "healthy",
        "active_sessions": len(_sessions),
        "module": "proctoring"
    }
