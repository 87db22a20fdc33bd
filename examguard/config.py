"""
ExamGuard Configuration Settings

Thresholds for the integrity-decision engine plus service and logging
options. Every value can be overridden from the environment or a .env file.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuration for the proctoring service."""

    # API Settings
    APP_NAME: str = "examguard"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # Identity matching
    SIMILARITY_THRESHOLD: float = 0.75
    MISMATCH_STRIKE_LIMIT: int = 30  # ~1 second of ticks
    MISMATCH_COOLDOWN_MS: float = 4000

    # Slow batch (objects, faces, landmarks)
    SLOW_PASS_INTERVAL_MS: float = 500

    # Landmark heuristics
    TALKING_COOLDOWN_MS: float = 2000
    GAZE_COOLDOWN_MS: float = 2000
    LIP_DISTANCE_THRESHOLD: float = 5.0  # pixels
    GAZE_RATIO_MIN: float = 0.30
    GAZE_RATIO_MAX: float = 0.70

    # Violation ledger
    LEDGER_DEBOUNCE_MS: float = 2000

    FORBIDDEN_OBJECTS: List[str] = ["cell phone", "book"]

    # Background loop cadence (display refresh)
    TICK_RATE_HZ: float = 60

    # Session handling
    REQUIRE_CALIBRATION: bool = False
    SESSION_RETENTION_SECONDS: float = 60

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
