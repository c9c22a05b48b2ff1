from .survey_document import SurveyDocumentModel

__all__ = [
    "SurveyDocumentModel",
]
