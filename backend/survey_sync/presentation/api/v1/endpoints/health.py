"""Health check endpoint — reports version, environment and the served collection."""

from fastapi import APIRouter

from survey_sync.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Returns the current application health status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "collection": settings.collection_path,
    }
