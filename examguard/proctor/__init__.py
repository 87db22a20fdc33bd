"""
Proctoring Module

Continuous integrity monitoring for online exams:
- Identity verification against a locked baseline embedding
- Prohibited object, face count, talking and gaze detection
- Browser lockdown events
- Debounced violation ledger and post-exam audit
"""

from .session import ProctorSession
from .context import SessionState
from .ledger import Incident, Severity, Violation, ViolationLedger

__all__ = [
    "ProctorSession",
    "SessionState",
    "Incident",
    "Severity",
    "Violation",
    "ViolationLedger",
]
