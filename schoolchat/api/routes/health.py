"""
Health Check Routes

FastAPI endpoints for service health and readiness checks.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from schoolchat import __version__
from schoolchat.api.deps import app_state
from schoolchat.models.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    """
    Basic liveness check.

    Returns 200 OK whenever the process is up.
    """
    pipeline = app_state["pipeline"]
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        mode=pipeline.executor.mode if pipeline is not None else None,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness() -> JSONResponse:
    """
    Readiness check for service dependencies.

    Checks:
    - Pipeline is initialized
    - Database (local or proxy) answers a probe query
    - Chat agent is initialized

    Returns:
        200 OK if all checks pass
        503 Service Unavailable if any check fails
    """
    checks: dict[str, bool] = {}
    pipeline = app_state["pipeline"]

    checks["pipeline"] = pipeline is not None
    if pipeline is not None:
        connection = await pipeline.test_connection()
        checks["database"] = connection.success
        if not connection.success:
            logger.warning(f"Database check: FAILED ({connection.message})")
    else:
        checks["database"] = False
        logger.warning("Database check: FAILED (pipeline not initialized)")
    checks["chat_agent"] = app_state["chat_agent"] is not None

    all_ready = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if all_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if all_ready else "not_ready", "checks": checks},
    )
