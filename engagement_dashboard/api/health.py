"""
Health API for the engagement dashboard backend.

Lightweight liveness endpoint; never touches the working set.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from engagement_dashboard.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health():
    """Liveness check (no deps)."""
    logger.info("health.check", extra={"request_id": get_request_id()})
    return {
        "status": "ok",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
