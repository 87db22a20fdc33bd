"""
Browser Lockdown - Classifies browser-chrome events reported by the exam client

The client blocks the actions itself; this module only decides which
events become audit-trail incidents.
"""

from typing import Optional

from .ledger import Incident, Severity

BLOCKED_MODIFIER_KEYS = {"c", "v", "p"}  # copy, paste, print
BLOCKED_KEYS = {"F12", "PrintScreen"}


def classify_lockdown_event(
    event: str,
    key: Optional[str] = None,
    ctrl_key: bool = False,
    meta_key: bool = False,
    hidden: bool = True
) -> Optional[Incident]:
    """
    Map a browser event to an incident.

    Args:
        event: DOM event name (visibilitychange, blur, keydown, contextmenu)
        key: KeyboardEvent.key for keydown events
        ctrl_key: Ctrl held during keydown
        meta_key: Cmd/Meta held during keydown
        hidden: document.hidden for visibilitychange events

    Returns:
        Incident to record, or None if the event is not a violation
    """
    if event == "visibilitychange":
        if hidden:
            return Incident("TAB_SWITCH_DETECTED", Severity.WARNING)
        return None

    if event == "blur":
        return Incident("WINDOW_FOCUS_LOST", Severity.WARNING)

    if event == "keydown" and key:
        modified = (ctrl_key or meta_key) and key in BLOCKED_MODIFIER_KEYS
        if modified or key in BLOCKED_KEYS:
            return Incident(f"SHORTCUT_BLOCKED_{key.upper()}", Severity.WARNING)

    # contextmenu is suppressed client-side without an incident
    return None
