from .base import Base
from .session import (
    engine,
    async_session_factory,
    build_engine,
    build_session_factory,
    create_schema,
)
from .models import SurveyDocumentModel

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "create_schema",
    "SurveyDocumentModel",
]
