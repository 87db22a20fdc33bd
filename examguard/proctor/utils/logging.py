"""
Proctoring Logger - Logs proctoring events and results
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Proctoring session ID
        event_type: Type of event (session_start, violation, session_end, etc.)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, assessment_id: str, student_id: str):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "assessment_id": assessment_id,
            "student_id": student_id
        }
    )


def log_session_end(session_id: str, total: int, critical: int, warning: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "violations": total,
            "critical": critical,
            "warning": warning
        }
    )


def log_baseline_locked(session_id: str, dimensions: int):
    """Log a successful identity baseline lock"""
    log_proctor_event(
        session_id=session_id,
        event_type="baseline_locked",
        details={"dimensions": dimensions}
    )


def log_violation_recorded(session_id: str, violation_type: str, severity: str, time: str):
    """Log a violation that made it into the ledger"""
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details={
            "type": violation_type,
            "severity": severity,
            "time": time
        },
        level="warning"
    )


def log_capability_failure(session_id: str, error: str):
    """Log a model/capability load failure"""
    log_proctor_event(
        session_id=session_id,
        event_type="capability_failure",
        details={"error": error},
        level="error"
    )
