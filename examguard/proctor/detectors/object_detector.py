"""
Prohibited Object Detector - Flags forbidden items in object detections
"""

import logging
from typing import Dict, Any, Iterable, List, Optional

from ..ledger import Incident, Severity
from .base import DetectorKind

logger = logging.getLogger(__name__)


class ProhibitedObjectDetector:
    """
    Filters an object-detection result set against the forbidden classes.

    All forbidden classes seen in one pass collapse into a single incident,
    deduplicated in order of first occurrence.
    """

    VIOLATION_PREFIX = "UNAUTHORIZED_OBJECT"

    PROHIBITED_ITEMS: List[str] = ["cell phone", "book"]

    kind = DetectorKind.OBJECTS

    def __init__(self, prohibited_items: Optional[Iterable[str]] = None):
        """
        Args:
            prohibited_items: Class labels to flag. Defaults to PROHIBITED_ITEMS.
        """
        items = prohibited_items if prohibited_items is not None else self.PROHIBITED_ITEMS
        self.prohibited_items = {item.lower() for item in items}

    def evaluate(self, detections: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Check detections for prohibited classes.

        Args:
            detections: Object detections, each with a "class" (or "name") label

        Returns:
            dict with:
                - prohibited_items: unique forbidden labels, first occurrence first
                - has_prohibited: bool
                - incident: Incident or None
        """
        found: List[str] = []
        seen = set()

        for detection in detections or []:
            label = detection.get("class", detection.get("name"))
            if label is None:
                continue
            key = label.lower()
            if key in self.prohibited_items and key not in seen:
                seen.add(key)
                found.append(label)

        incident = None
        if found:
            incident = Incident(
                f"{self.VIOLATION_PREFIX}: {', '.join(found)}",
                Severity.WARNING
            )

        return {
            "prohibited_items": found,
            "has_prohibited": len(found) > 0,
            "incident": incident
        }
