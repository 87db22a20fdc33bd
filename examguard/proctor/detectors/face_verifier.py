"""
Face Verifier - Flags sustained identity mismatch against the locked baseline

Every tick compares the live embedding with the baseline. A tick below the
similarity threshold is a strike; a matching tick clears the strikes. An
alert needs more than ``strike_limit`` consecutive strikes and an elapsed
cooldown, so single-frame misses (blinks, motion blur) never alert and a
sustained mismatch alerts at most once per cooldown.
"""

import logging
from typing import Dict, Any, Sequence

from ..ledger import Incident, Severity
from ..scoring.similarity import cosine_similarity, match_percentage
from .base import DetectionState, DetectorKind

logger = logging.getLogger(__name__)


class IdentityMismatchDetector:
    """Strike-counting identity check, evaluated on every tick."""

    VIOLATION_TYPE = "IDENTITY_MISMATCH"

    DEFAULT_THRESHOLD = 0.75
    DEFAULT_STRIKE_LIMIT = 30
    DEFAULT_COOLDOWN_MS = 4000

    kind = DetectorKind.IDENTITY

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        strike_limit: int = DEFAULT_STRIKE_LIMIT
    ):
        """
        Args:
            threshold: Cosine similarity below which a tick counts as a strike
            strike_limit: Strikes must exceed this before an alert is raised
        """
        self.threshold = threshold
        self.strike_limit = strike_limit

    def evaluate(
        self,
        state: DetectionState,
        baseline: Sequence[float],
        embedding: Sequence[float],
        now: float
    ) -> Dict[str, Any]:
        """
        Score the live embedding and update the strike counter.

        Args:
            state: Session detection state (strikes and cooldowns)
            baseline: Locked reference embedding
            embedding: Embedding of the current frame
            now: Monotonic time in milliseconds

        Returns:
            dict with:
                - similarity: raw cosine similarity
                - match_score: similarity as a 0-100 percentage
                - strikes: strike count after this tick
                - incident: Incident or None
        """
        similarity = cosine_similarity(baseline, embedding)

        if similarity < self.threshold:
            state.mismatch_strikes += 1
        else:
            state.mismatch_strikes = 0

        incident = None
        cooldown = state.cooldown(self.kind)

        if state.mismatch_strikes > self.strike_limit and cooldown.ready(now):
            incident = Incident(self.VIOLATION_TYPE, Severity.CRITICAL)
            cooldown.fire(now)
            logger.debug(f"Identity mismatch after {state.mismatch_strikes} strikes")
            state.mismatch_strikes = 0

        return {
            "similarity": similarity,
            "match_score": match_percentage(similarity),
            "strikes": state.mismatch_strikes,
            "incident": incident
        }
