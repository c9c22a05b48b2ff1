"""FastAPI application factory for the survey document store service."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from survey_sync.config import get_settings
from survey_sync.infrastructure.database import create_schema
from survey_sync.infrastructure.dependencies import shutdown_document_stores
from survey_sync.infrastructure.logging.log_config import setup_logging
from survey_sync.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — create tables, then close live streams on shutdown."""
    settings = get_settings()
    setup_logging()

    await create_schema()
    logger.info("Serving collection %s", settings.collection_path)

    yield

    # Ends every open SSE stream so uvicorn can shut down.
    shutdown_document_stores()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "survey_sync.main:app",
        host="0.0.0.0",
        port=8030,
        reload=True,
    )
