"""
Service information endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from game_review_api.app.core.config import settings


router = APIRouter()


@router.get("/health")
async def health() -> dict:
    """Liveness check used by deployments and during development."""
    return {
        "success": True,
        "message": f"{settings.project_name} is running",
        "version": settings.api_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
