"""
Proctor Session - Lifecycle controller for a single proctored exam

States move strictly forward:

    not_started -> awaiting_baseline -> monitoring -> ended

not_started -> awaiting_baseline once capabilities are ready,
awaiting_baseline -> monitoring when the identity baseline is locked,
-> ended on the operator's "end exam". Only reset_session() goes back
to not_started.
"""

import asyncio
import uuid
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import settings as default_settings
from .calibration import CalibrationChecklist
from .capabilities import CapabilitySet, resolve
from .context import MonitoringContext, SessionState
from .detectors.bank import DetectionBank
from .errors import CalibrationIncompleteError, CapabilityLoadError, SessionStateError
from .ledger import Violation, ViolationLedger, monotonic_ms
from .lockdown import classify_lockdown_event
from .loop import SurveillanceLoop
from .utils.logging import (
    log_baseline_locked,
    log_capability_failure,
    log_session_end,
    log_session_start
)

logger = logging.getLogger(__name__)


class ProctorSession:
    """
    Manages a single proctoring session.

    Owns the monitoring context (baseline, ledger, detector state) and the
    surveillance loop, and gates which operations are allowed in each state.
    """

    def __init__(
        self,
        assessment_id: str = "",
        student_id: str = "",
        session_id: Optional[str] = None,
        settings=None,
        bank: Optional[DetectionBank] = None,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize a new proctoring session.

        Args:
            assessment_id: ID of the assessment being proctored
            student_id: ID of the student being proctored
            session_id: Optional custom session ID (auto-generated if not provided)
            settings: Settings object (defaults to the service settings)
            bank: Detection bank (defaults to one built from settings)
            clock: Monotonic milliseconds, for cooldowns and debounce
            wall_clock: Timestamp source for violations and the audit report
        """
        self.id = session_id or f"EXM_{uuid.uuid4().hex[:6].upper()}"
        self.assessment_id = assessment_id
        self.student_id = student_id
        self.settings = settings or default_settings

        self._clock = clock or monotonic_ms
        self._wall_clock = wall_clock or datetime.now

        self.started_at = self._wall_clock()
        self.ended_at: Optional[datetime] = None
        self.error: Optional[str] = None

        self.capabilities = CapabilitySet()
        self.bank = bank or DetectionBank.from_settings(self.settings)
        self.calibration = CalibrationChecklist()

        self.ledger = ViolationLedger(
            session_id=self.id,
            debounce_ms=self.settings.LEDGER_DEBOUNCE_MS,
            clock=self._clock,
            wall_clock=self._wall_clock
        )
        self.context = MonitoringContext(
            session_id=self.id,
            ledger=self.ledger,
            detection=self.bank.new_state()
        )
        self.surveillance = SurveillanceLoop(
            self.capabilities,
            self.bank,
            tick_rate_hz=self.settings.TICK_RATE_HZ,
            clock=self._clock
        )
        self._loop_task: Optional[asyncio.Task] = None

        log_session_start(self.id, assessment_id, student_id)

    # ============== State ==============

    @property
    def state(self) -> SessionState:
        return self.context.state

    def session_state(self) -> SessionState:
        return self.context.state

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.AWAITING_BASELINE, SessionState.MONITORING)

    def _require(self, operation: str, *allowed: SessionState):
        if self.state not in allowed:
            raise SessionStateError(operation, self.state.value)

    # ============== Capabilities ==============

    def attach_capabilities(self, capabilities: CapabilitySet):
        """
        Attach ready capabilities (the readiness signal).

        Raises:
            SessionStateError: If the session is past not_started
            CapabilityLoadError: If the set is incomplete
        """
        self._require("attach capabilities", SessionState.NOT_STARTED)

        if not capabilities.is_ready():
            missing = [name for name, ok in capabilities.status().items() if not ok]
            raise CapabilityLoadError(", ".join(missing), "not loaded")

        self.capabilities = capabilities
        self.surveillance.capabilities = capabilities
        self.mark_ready()

    def mark_ready(self):
        """Move to awaiting_baseline if the attached capabilities are ready"""
        self._require("arm session", SessionState.NOT_STARTED)

        if not self.capabilities.is_ready():
            raise CapabilityLoadError("capabilities", "not loaded")

        self.error = None
        self.context.state = SessionState.AWAITING_BASELINE
        logger.info(f"Session {self.id} armed, awaiting identity baseline")

    async def initialize(self, loader: Callable[[], Awaitable[CapabilitySet]]) -> bool:
        """
        Load capabilities and arm the session.

        A load failure is a blocking error: it is stored in ``error``, the
        session stays not_started and nothing is retried.

        Returns:
            True if the session is now awaiting a baseline
        """
        try:
            capabilities = await resolve(loader())
            self.attach_capabilities(capabilities)
        except SessionStateError:
            raise
        except Exception as e:
            self.error = str(e)
            log_capability_failure(self.id, self.error)
            return False
        return True

    # ============== Operator Actions ==============

    async def lock_baseline(self) -> bool:
        """
        Capture the current frame's embedding as the identity baseline.

        Returns:
            True if locked, False if no frame or embedding was available
            (the operator may retry)

        Raises:
            SessionStateError: Before capabilities are ready or after the end
            CalibrationIncompleteError: If calibration is required and pending
        """
        self._require("lock baseline", SessionState.AWAITING_BASELINE, SessionState.MONITORING)

        if self.settings.REQUIRE_CALIBRATION and not self.calibration.all_clear:
            raise CalibrationIncompleteError(self.calibration.pending())

        generation = self.context.generation

        try:
            frame = self.capabilities.frame_source.read()
        except Exception as e:
            logger.debug(f"Frame read failed during baseline lock: {e}")
            frame = None

        if frame is None:
            logger.info(f"Baseline lock skipped for session {self.id}: no frame ready")
            return False

        try:
            embedding = await resolve(self.capabilities.embedding_model.predict(frame))
        except Exception as e:
            logger.warning(f"Baseline lock failed for session {self.id}: {e}")
            return False

        # The session may have ended or been reset while the model was running
        if self.context.stale(generation):
            return False

        try:
            self.context.baseline.lock(embedding)
        except ValueError as e:
            logger.warning(f"Baseline lock failed for session {self.id}: {e}")
            return False

        self.context.state = SessionState.MONITORING
        log_baseline_locked(self.id, self.context.baseline.dimensions)
        return True

    async def tick(self) -> Dict[str, Any]:
        """Run one surveillance tick (host-driven cadence)."""
        self._require(
            "run surveillance",
            SessionState.AWAITING_BASELINE,
            SessionState.MONITORING,
            SessionState.ENDED
        )
        return await self.surveillance.tick(self.context)

    def start(self) -> asyncio.Task:
        """Start the background surveillance loop on the running event loop."""
        self._require("start surveillance", SessionState.AWAITING_BASELINE, SessionState.MONITORING)

        if self._loop_task is not None and not self._loop_task.done():
            return self._loop_task

        self._loop_task = asyncio.get_running_loop().create_task(
            self.surveillance.run(self.context)
        )
        return self._loop_task

    def end_session(self) -> Dict[str, Any]:
        """
        End the exam. Terminal until reset; repeated calls return the same report.

        Returns:
            Post-exam audit report
        """
        if self.state is not SessionState.ENDED:
            self.context.state = SessionState.ENDED
            self.ended_at = self._wall_clock()
            self.ledger.seal()
            self.surveillance.stop()

            counts = self.severity_counts()
            log_session_end(self.id, len(self.ledger), counts["Critical"], counts["Warning"])

        return self.audit_report()

    def reset_session(self):
        """Discard all session state and return to not_started."""
        self.surveillance.stop()
        self._loop_task = None

        self.context.reset()
        self.calibration.reset()
        self.error = None
        self.started_at = self._wall_clock()
        self.ended_at = None

        logger.info(f"Session {self.id} reset")

    def record_lockdown_event(
        self,
        event: str,
        key: Optional[str] = None,
        ctrl_key: bool = False,
        meta_key: bool = False,
        hidden: bool = True
    ) -> Optional[Violation]:
        """Record a browser lockdown event while monitoring; ignored otherwise."""
        if self.state is not SessionState.MONITORING:
            return None

        incident = classify_lockdown_event(event, key, ctrl_key, meta_key, hidden)
        if incident is None:
            return None
        return self.ledger.record(incident)

    # ============== Read-only Views ==============

    def current_match_score(self) -> float:
        return self.context.match_score

    def violation_log(self) -> List[Violation]:
        return self.ledger.entries()

    def severity_counts(self) -> Dict[str, int]:
        return self.ledger.count_by_severity()

    def duration_seconds(self) -> float:
        end = self.ended_at or self._wall_clock()
        return (end - self.started_at).total_seconds()

    def status(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "state": self.state.value,
            "is_active": self.is_active,
            "error": self.error,
            "baseline_locked": self.context.baseline.is_locked,
            "match_score": self.current_match_score(),
            "severity_counts": self.severity_counts(),
            "total_violations": len(self.ledger),
            "calibration": self.calibration.as_dict(),
            "capabilities": self.capabilities.status(),
            "ticks_processed": self.surveillance.tick_count,
            "duration_seconds": self.duration_seconds()
        }

    def audit_report(self) -> Dict[str, Any]:
        counts = self.severity_counts()
        return {
            "session_id": self.id,
            "assessment_id": self.assessment_id,
            "student_id": self.student_id,
            "state": self.state.value,
            "total_violations": len(self.ledger),
            "critical_count": counts["Critical"],
            "warning_count": counts["Warning"],
            "violations_by_type": self.ledger.count_by_type(),
            "violations": [v.to_dict() for v in self.violation_log()],
            "final_match_score": self.current_match_score(),
            "duration_seconds": self.duration_seconds()
        }
