"""Abstract document store interface (port) — implemented in the infrastructure layer."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from survey_sync.domain.entities import DocumentChange, DocumentWrite, SurveyDocument


class DocumentStore(ABC):
    """Port for the multi-writer survey collection.

    Every write is a full document replace; the store assigns ids on
    create and stamps ``updated_at`` itself on every write.
    """

    @abstractmethod
    async def create(self, data: DocumentWrite) -> str:
        """Persist a new document and return its store-assigned id."""
        ...

    @abstractmethod
    async def replace(self, document_id: str, data: DocumentWrite) -> None:
        """Overwrite every field of the document at ``document_id``."""
        ...

    @abstractmethod
    async def delete(self, document_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
        ...

    @abstractmethod
    async def get(self, document_id: str) -> SurveyDocument | None:
        """Fetch a single document, or None when it does not exist."""
        ...

    @abstractmethod
    def listen(self) -> AsyncIterator[list[DocumentChange]]:
        """Stream change batches for the whole collection.

        The first batch contains every existing document as ``added``.
        Raises FeedError when the subscription fails or is interrupted.
        """
        ...

    async def aclose(self) -> None:
        """Release any connection held by the store."""
        return None
