"""
Identity Baseline - Holds the locked reference embedding for a session
"""

import logging
import numpy as np
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class IdentityBaseline:
    """
    Stores the one reference embedding captured when the operator locks identity.

    Re-locking overwrites the stored embedding; only a full reset clears it.
    """

    def __init__(self):
        self._embedding: Optional[List[float]] = None

    def lock(self, embedding: Sequence[float]):
        """
        Store a flattened copy of the embedding as the session baseline.

        Raises:
            ValueError: If the embedding is empty or not numeric
        """
        try:
            values = np.asarray(embedding, dtype=np.float64).ravel()
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid embedding: {e}") from e

        if values.size == 0:
            raise ValueError("Cannot lock an empty embedding")

        if self._embedding is not None:
            logger.info("Overwriting existing identity baseline")

        self._embedding = values.tolist()

    def current(self) -> Optional[List[float]]:
        """Stored embedding, or None if no baseline has been locked"""
        if self._embedding is None:
            return None
        return list(self._embedding)

    @property
    def is_locked(self) -> bool:
        return self._embedding is not None

    @property
    def dimensions(self) -> int:
        return len(self._embedding) if self._embedding is not None else 0

    def reset(self):
        self._embedding = None
