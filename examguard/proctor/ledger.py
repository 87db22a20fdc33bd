"""
Violation Ledger - Debounced audit trail of proctoring incidents
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Any, List, Optional

from .utils.logging import log_violation_recorded

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds"""
    return time.monotonic() * 1000


class Severity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"


@dataclass(frozen=True)
class Incident:
    """A detector's request to record a violation."""
    type: str
    severity: Severity


@dataclass(frozen=True)
class Violation:
    """A recorded ledger entry."""
    type: str
    severity: Severity
    time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "time": self.time.isoformat()
        }


class ViolationLedger:
    """
    Append-only log of violations, newest first.

    A record call is dropped when the most recent entry has the same type
    and was recorded less than ``debounce_ms`` ago. Only the latest entry is
    compared, so an intervening violation of another type re-opens the window.
    """

    DEFAULT_DEBOUNCE_MS = 2000

    def __init__(
        self,
        session_id: str = "-",
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        clock: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            session_id: Owning session, used in log lines
            debounce_ms: Same-type suppression window
            clock: Monotonic milliseconds, used for the debounce window
            wall_clock: Timestamp source for recorded entries
        """
        self.session_id = session_id
        self.debounce_ms = debounce_ms
        self._clock = clock or monotonic_ms
        self._wall_clock = wall_clock or datetime.now

        self._entries: List[Violation] = []
        self._last_recorded_at: Optional[float] = None
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def record(self, incident: Incident) -> Optional[Violation]:
        """
        Append an incident unless it is debounced or the ledger is sealed.

        Returns:
            The recorded Violation, or None if the call was a no-op
        """
        if self._sealed:
            return None

        now = self._clock()

        if self._entries and self._last_recorded_at is not None:
            latest = self._entries[0]
            if latest.type == incident.type and now - self._last_recorded_at < self.debounce_ms:
                return None

        violation = Violation(
            type=incident.type,
            severity=Severity(incident.severity),
            time=self._wall_clock()
        )
        self._entries.insert(0, violation)
        self._last_recorded_at = now

        log_violation_recorded(
            self.session_id,
            violation.type,
            violation.severity.value,
            violation.time.isoformat()
        )

        return violation

    def entries(self) -> List[Violation]:
        """All recorded violations, newest first"""
        return list(self._entries)

    def count_by_severity(self) -> Dict[str, int]:
        counts = {Severity.CRITICAL.value: 0, Severity.WARNING.value: 0}
        for entry in self._entries:
            counts[entry.severity.value] += 1
        return counts

    def count_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self._entries:
            counts[entry.type] = counts.get(entry.type, 0) + 1
        return counts

    def seal(self):
        """Stop accepting new entries (session ended)"""
        self._sealed = True

    def reset(self):
        """Drop all entries (full session reset)"""
        self._entries = []
        self._last_recorded_at = None
        self._sealed = False

    def __len__(self) -> int:
        return len(self._entries)
