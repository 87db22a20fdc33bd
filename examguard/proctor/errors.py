"""
Proctoring Errors
"""


class ProctorError(Exception):
    """Base class for proctoring errors"""


class SessionStateError(ProctorError):
    """Operation is not allowed in the session's current state"""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while session is {state}")


class CapabilityLoadError(ProctorError):
    """One or more detection capabilities failed to initialize"""

    def __init__(self, capability: str, reason: str):
        self.capability = capability
        self.reason = reason
        super().__init__(f"Failed to load {capability}: {reason}")


class CalibrationIncompleteError(ProctorError):
    """Baseline lock attempted before the calibration checklist is clear"""

    def __init__(self, pending):
        self.pending = list(pending)
        super().__init__(f"Calibration incomplete: {', '.join(self.pending)}")
