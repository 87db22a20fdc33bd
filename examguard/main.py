"""
ExamGuard Service - FastAPI Application
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .proctor.api import router as proctor_router
from .utils import setup_logging

logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Integrity-decision engine for browser-proctored exams",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)


# ============================================================================
# Request Logging Middleware
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start = time.time()
    method = request.method
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{method} {path} failed: {e}")
        raise

    # Frame streaming is too chatty for info level
    if path not in ["/health", "/favicon.ico", "/api/proctor/stream"]:
        duration_ms = int((time.time() - start) * 1000)
        logger.info(f"{method} {path} -> {response.status_code} in {duration_ms}ms")

    return response


# CORS middleware - exam pages are served from other origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when using wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(proctor_router)


@app.on_event("startup")
async def startup_event():
    """Configure logging and report the active thresholds."""
    setup_logging(
        service_name=settings.APP_NAME,
        level=settings.LOG_LEVEL,
        log_to_file=settings.LOG_TO_FILE,
        log_dir=settings.LOG_DIR
    )

    logger.info("Configuration:")
    logger.info(f"  Similarity threshold: {settings.SIMILARITY_THRESHOLD}")
    logger.info(f"  Mismatch strikes: {settings.MISMATCH_STRIKE_LIMIT} / cooldown {settings.MISMATCH_COOLDOWN_MS}ms")
    logger.info(f"  Slow pass interval: {settings.SLOW_PASS_INTERVAL_MS}ms")
    logger.info(f"  Require calibration: {settings.REQUIRE_CALIBRATION}")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "proctoring": "/api/proctor"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("examguard.main:app", host="0.0.0.0", port=8001, reload=settings.DEBUG)
