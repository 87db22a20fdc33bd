"""
Monitoring Context - The single mutable state object a tick operates on
"""

from dataclasses import dataclass, field
from enum import Enum

from .baseline import IdentityBaseline
from .detectors.base import DetectionState
from .ledger import ViolationLedger


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_BASELINE = "awaiting_baseline"
    MONITORING = "monitoring"
    ENDED = "ended"


INITIAL_MATCH_SCORE = 100.0


@dataclass
class MonitoringContext:
    """Everything a surveillance tick reads or writes, passed in explicitly."""

    session_id: str
    ledger: ViolationLedger
    detection: DetectionState
    baseline: IdentityBaseline = field(default_factory=IdentityBaseline)
    state: SessionState = SessionState.NOT_STARTED
    match_score: float = INITIAL_MATCH_SCORE
    last_similarity: float = 1.0
    generation: int = 0  # bumped on every reset

    @property
    def ended(self) -> bool:
        return self.state is SessionState.ENDED

    def stale(self, generation: int) -> bool:
        """True if the session ended or was reset since ``generation`` was read"""
        return self.ended or self.generation != generation

    def reset(self):
        self.generation += 1
        self.ledger.reset()
        self.detection.reset()
        self.baseline.reset()
        self.state = SessionState.NOT_STARTED
        self.match_score = INITIAL_MATCH_SCORE
        self.last_similarity = 1.0
