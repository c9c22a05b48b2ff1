"""Domain entities describing the mirrored document collection."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .survey_document import SurveyDocument


class ChangeType(str, Enum):
    """Kind of change pushed by the store for one document."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class DocumentChange:
    """A single server-pushed delta. ``document`` is None for removals."""

    type: ChangeType
    document_id: str
    document: SurveyDocument | None = None


@dataclass(frozen=True)
class CollectionSnapshot:
    """Read-only view of every document currently known to the feed.

    Snapshots are never patched in place; the feed builds a new one for
    every pushed change batch.
    """

    documents: Mapping[str, SurveyDocument] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_documents(cls, documents: dict[str, SurveyDocument]) -> "CollectionSnapshot":
        return cls(MappingProxyType(dict(documents)))

    def apply(self, changes: list[DocumentChange]) -> "CollectionSnapshot":
        """Return a new snapshot with ``changes`` applied in order."""
        updated = dict(self.documents)
        for change in changes:
            if change.type is ChangeType.REMOVED:
                updated.pop(change.document_id, None)
            elif change.document is not None:
                updated[change.document_id] = change.document
        return CollectionSnapshot.from_documents(updated)

    def get(self, document_id: str) -> SurveyDocument | None:
        return self.documents.get(document_id)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self.documents

    def __iter__(self) -> Iterator[SurveyDocument]:
        return iter(self.documents.values())

    def __len__(self) -> int:
        return len(self.documents)
