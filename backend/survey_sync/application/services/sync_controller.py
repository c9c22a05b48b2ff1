"""Sync controller — turns the draft into store writes and keeps it consistent with the feed."""

import asyncio
import logging

from survey_sync.application.interfaces import DocumentStore
from survey_sync.application.services.collection_feed import CollectionFeed, FeedSubscription
from survey_sync.application.services.draft_state import DraftState
from survey_sync.application.services.identity_session import IdentitySession
from survey_sync.domain.entities import CollectionSnapshot, DocumentWrite, SurveyDocument
from survey_sync.domain.exceptions import EntityNotFoundError, ValidationError
from survey_sync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
log = SyncLogger(__name__)


class SyncController:
    """Orchestrates a DraftState against the document store.

    Every save is a full replace of the stored document (last write wins,
    no merge, no version check). The first save of an Unbound draft creates
    the document and binds the draft to the new id. Saves and deletes issued
    through one controller run one at a time, in call order.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentitySession,
        draft: DraftState,
        feed: CollectionFeed | None = None,
    ) -> None:
        self._store = store
        self._identity = identity
        self.draft = draft
        self._feed = feed
        self._write_lock = asyncio.Lock()
        self._subscription: FeedSubscription | None = None
        self._last_seen_ids: frozenset[str] = frozenset()
        self.is_saving = False

    async def save(self) -> str:
        """Write the draft to the store and return the id it is bound to.

        Raises ValidationError for a blank title and IdentityError when no
        identity can be resolved, in both cases without calling the store.
        Store failures raise StoreWriteError and leave the draft untouched.
        """
        async with self._write_lock:
            _require_title(self.draft.tema_central)
            identity = await self._identity.resolve()
            revision, edits = self.draft.revision, self.draft.edits
            current = self.draft.to_document()
            # The draft may have been reset while the identity resolved.
            _require_title(current.tema_central)
            document_id = current.id
            payload = DocumentWrite(
                tema_central=current.tema_central,
                acesso_rows=tuple(current.acesso_rows),
                qualidade_rows=tuple(current.qualidade_rows),
                author=identity.subject_id,
            )

            self.is_saving = True
            try:
                if document_id is not None:
                    with log.timed_step(SyncStage.SAVE, "Replacing document", document_id=document_id):
                        await self._store.replace(document_id, payload)
                    self.draft.mark_saved(revision, edits)
                else:
                    with log.timed_step(SyncStage.SAVE, "Creating document"):
                        document_id = await self._store.create(payload)
                    if self._bind_created(document_id, revision):
                        self.draft.mark_saved(revision, edits)
            finally:
                self.is_saving = False

            return document_id

    async def delete(self, document_id: str) -> None:
        """Delete a document; resets the draft when it was the one being edited.

        Confirmation is the caller's job. On StoreWriteError the draft is
        left as it was.
        """
        async with self._write_lock:
            await self._identity.resolve()
            with log.timed_step(SyncStage.DELETE, "Deleting document", document_id=document_id):
                await self._store.delete(document_id)
            if self.draft.document_id == document_id:
                self.draft.reset()

    async def load(self, document_id: str) -> SurveyDocument:
        """Open a document into the draft, preferring the mirrored snapshot."""
        document = None
        if self._feed is not None and self._feed.snapshot is not None:
            document = self._feed.snapshot.get(document_id)
            if document is not None:
                document = document.clone()
        if document is None:
            await self._identity.resolve()
            document = await self._store.get(document_id)
        if document is None:
            raise EntityNotFoundError("SurveyDocument", document_id)
        self.draft.load(document)
        return document

    def new_document(self) -> None:
        self.draft.reset()

    async def attach(self) -> FeedSubscription:
        """Subscribe to the feed so remote deletes of the bound document reset the draft."""
        if self._feed is None:
            raise RuntimeError("SyncController was created without a CollectionFeed")
        if self._subscription is None or not self._subscription.active:
            self._subscription = await self._feed.subscribe(self.reconcile)
        return self._subscription

    async def detach(self) -> None:
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        self._last_seen_ids = frozenset()

    def reconcile(self, snapshot: CollectionSnapshot) -> None:
        """Reset the draft when its document vanished from the collection.

        Only a document that was present in the previous snapshot counts as
        vanished; a just-created document the feed has not delivered yet
        is left alone.
        """
        previous, self._last_seen_ids = self._last_seen_ids, frozenset(snapshot.documents)
        bound_id = self.draft.document_id
        if bound_id is None or bound_id in snapshot:
            return
        if bound_id in previous:
            log.step_start(
                SyncStage.RECONCILE, "Bound document removed remotely, resetting draft",
                document_id=bound_id,
            )
            self.draft.reset()

    def _bind_created(self, document_id: str, revision: int) -> bool:
        if self.draft.revision != revision or self.draft.is_bound:
            logger.warning(
                "Draft was replaced while document %s was being created; not binding",
                document_id,
            )
            return False
        self.draft.bind(document_id)
        return True


def _require_title(title: str) -> None:
    if not title.strip():
        raise ValidationError("temaCentral", "Title must not be blank")
