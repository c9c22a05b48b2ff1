"""Shared fakes and fixtures for the sync core tests."""

import asyncio
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta, timezone

import pytest

from survey_sync.application.interfaces import DocumentStore, IdentityProvider
from survey_sync.application.services import (
    CollectionFeed,
    DraftState,
    IdentitySession,
    SyncController,
)
from survey_sync.domain.entities import (
    ChangeType,
    DocumentChange,
    DocumentWrite,
    Identity,
    SurveyDocument,
)
from survey_sync.domain.exceptions import IdentityError, StoreWriteError


# ── Fakes ────────────────────────────────────────────────────────────


class FakeDocumentStore(DocumentStore):
    """In-memory multi-writer store with push notifications.

    Several controllers sharing one instance behave like several clients of
    the same remote collection. ``updated_at`` comes from a fake clock that
    advances one second per write.
    """

    def __init__(self) -> None:
        self.documents: dict[str, SurveyDocument] = {}
        self.calls: list[tuple[str, str | None]] = []
        self._next_id = 1
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._listeners: list[asyncio.Queue] = []
        self._failures: dict[str, Exception] = {}

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        self._failures[operation] = error or StoreWriteError(operation, "backend unavailable")

    async def break_feed(self, error: Exception) -> None:
        for queue in self._listeners:
            queue.put_nowait(error)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _check(self, operation: str, document_id: str | None = None) -> None:
        self.calls.append((operation, document_id))
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _store(self, document_id: str, data: DocumentWrite) -> SurveyDocument:
        document = SurveyDocument(
            id=document_id,
            tema_central=data.tema_central,
            acesso_rows=list(data.acesso_rows),
            qualidade_rows=list(data.qualidade_rows),
            author=data.author,
            updated_at=self._tick(),
        ).clone()
        self.documents[document_id] = document
        return document

    def _publish(self, change: DocumentChange) -> None:
        for queue in self._listeners:
            queue.put_nowait([change])

    async def create(self, data: DocumentWrite) -> str:
        self._check("create")
        document_id = f"doc-{self._next_id}"
        self._next_id += 1
        document = self._store(document_id, data)
        self._publish(DocumentChange(ChangeType.ADDED, document_id, document.clone()))
        return document_id

    async def replace(self, document_id: str, data: DocumentWrite) -> None:
        self._check("replace", document_id)
        existed = document_id in self.documents
        document = self._store(document_id, data)
        change_type = ChangeType.MODIFIED if existed else ChangeType.ADDED
        self._publish(DocumentChange(change_type, document_id, document.clone()))

    async def delete(self, document_id: str) -> None:
        self._check("delete", document_id)
        if self.documents.pop(document_id, None) is not None:
            self._publish(DocumentChange(ChangeType.REMOVED, document_id))

    async def get(self, document_id: str) -> SurveyDocument | None:
        self.calls.append(("get", document_id))
        document = self.documents.get(document_id)
        return document.clone() if document else None

    async def listen(self) -> AsyncIterator[list[DocumentChange]]:
        self._check("listen")
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.append(queue)
        try:
            yield [
                DocumentChange(ChangeType.ADDED, doc_id, doc.clone())
                for doc_id, doc in self.documents.items()
            ]
            while True:
                item = await queue.get()
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self._listeners.remove(queue)


class FakeIdentityProvider(IdentityProvider):
    """Counts sign-ins; either path can be made to fail."""

    def __init__(
        self,
        subject_id: str = "user-anon",
        *,
        fail_token: bool = False,
        fail_anonymous: bool = False,
    ) -> None:
        self.subject_id = subject_id
        self.fail_token = fail_token
        self.fail_anonymous = fail_anonymous
        self.token_calls: list[str] = []
        self.anonymous_calls = 0

    async def sign_in_with_token(self, token: str) -> Identity:
        self.token_calls.append(token)
        await asyncio.sleep(0)
        if self.fail_token:
            raise IdentityError("token rejected")
        return Identity(subject_id=f"user-{token}", is_anonymous=False, id_token=token)

    async def sign_in_anonymously(self) -> Identity:
        self.anonymous_calls += 1
        await asyncio.sleep(0)
        if self.fail_anonymous:
            raise IdentityError("anonymous sign-in disabled")
        return Identity(subject_id=self.subject_id)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def identity(identity_provider: FakeIdentityProvider) -> IdentitySession:
    return IdentitySession(identity_provider)


@pytest.fixture
def feed(store: FakeDocumentStore, identity: IdentitySession) -> CollectionFeed:
    return CollectionFeed(store, identity)


@pytest.fixture
def controller(
    store: FakeDocumentStore, identity: IdentitySession, feed: CollectionFeed
) -> SyncController:
    return SyncController(store, identity, DraftState(), feed)


def make_client(store: FakeDocumentStore, subject_id: str) -> SyncController:
    """A second, independent client of the same store."""
    identity = IdentitySession(FakeIdentityProvider(subject_id))
    return SyncController(
        store, identity, DraftState(), CollectionFeed(store, identity)
    )


@pytest.fixture
def client_factory() -> Callable[[FakeDocumentStore, str], SyncController]:
    return make_client


@pytest.fixture
def waiter() -> Callable:
    return wait_until


@pytest.fixture
def provider_factory() -> type[FakeIdentityProvider]:
    return FakeIdentityProvider
