from .survey_document_store import SQLAlchemyDocumentStore

__all__ = [
    "SQLAlchemyDocumentStore",
]
