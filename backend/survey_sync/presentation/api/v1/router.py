"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from survey_sync.presentation.api.v1.endpoints.health import router as health_router
from survey_sync.presentation.api.v1.endpoints.projects import router as projects_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(projects_router)
