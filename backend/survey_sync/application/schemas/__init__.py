from .survey_document import (
    CreatedResponse,
    DocumentChangeSchema,
    RowSchema,
    SurveyDocumentResponse,
    SurveyDocumentWrite,
)

__all__ = [
    "CreatedResponse",
    "DocumentChangeSchema",
    "RowSchema",
    "SurveyDocumentResponse",
    "SurveyDocumentWrite",
]
