"""
Health check endpoint for monitoring and load balancer probes.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from .. import __version__
from ..core.config import settings
from ..database import get_db_pool_status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database_pool": get_db_pool_status(),
    }
