"""Explicit context object shared by every sync component."""

from dataclasses import dataclass

from survey_sync.application.interfaces import DocumentStore
from survey_sync.application.services.collection_feed import CollectionFeed
from survey_sync.application.services.draft_state import DraftState
from survey_sync.application.services.identity_session import IdentitySession
from survey_sync.application.services.sync_controller import SyncController


@dataclass
class SyncContext:
    """Owns the store connection and the identity session for one client.

    Components receive the context (or its parts) explicitly; nothing in the
    core reaches for a process-wide store or identity.
    """

    store: DocumentStore
    identity: IdentitySession
    min_scaffold_rows: int = 1

    def create_feed(self) -> CollectionFeed:
        return CollectionFeed(self.store, self.identity)

    def create_controller(
        self,
        feed: CollectionFeed | None = None,
        draft: DraftState | None = None,
    ) -> SyncController:
        return SyncController(
            store=self.store,
            identity=self.identity,
            draft=draft or DraftState(min_rows=self.min_scaffold_rows),
            feed=feed,
        )

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.identity.aclose()
