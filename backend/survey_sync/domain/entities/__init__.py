from .identity import Identity
from .survey_document import (
    ACESSO_OPTIONS,
    PROBLEM_OPTIONS,
    QUALIDADE_OPTIONS,
    ROW_FIELDS,
    DocumentWrite,
    Row,
    RowList,
    SurveyDocument,
)
from .collection import ChangeType, CollectionSnapshot, DocumentChange

__all__ = [
    "Identity",
    "ACESSO_OPTIONS",
    "PROBLEM_OPTIONS",
    "QUALIDADE_OPTIONS",
    "ROW_FIELDS",
    "DocumentWrite",
    "Row",
    "RowList",
    "SurveyDocument",
    "ChangeType",
    "CollectionSnapshot",
    "DocumentChange",
]
