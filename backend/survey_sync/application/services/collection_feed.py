"""Collection feed — live, locally mirrored snapshot of the survey collection."""

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from survey_sync.application.interfaces import DocumentStore
from survey_sync.application.services.identity_session import IdentitySession
from survey_sync.domain.entities import CollectionSnapshot
from survey_sync.domain.exceptions import FeedError
from survey_sync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
log = SyncLogger(__name__)

SnapshotCallback = Callable[[CollectionSnapshot], Awaitable[None] | None]
ErrorCallback = Callable[[FeedError], Awaitable[None] | None]


class FeedSubscription:
    """Handle for one consumer of the feed. Unsubscribing is idempotent."""

    def __init__(
        self,
        feed: "CollectionFeed",
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        self._feed = feed
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self._feed._remove(self)

    async def __aenter__(self) -> "FeedSubscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.unsubscribe()


class CollectionFeed:
    """Mirrors the remote collection and pushes whole snapshots to consumers.

    A single remote listen is shared by every local subscription. It starts
    with the first subscriber and is torn down when the last one leaves.
    Each pushed change batch is applied to a copy of the current snapshot,
    which is then swapped in, so consumers never see a partial update.

    When the listen fails, every subscription receives the FeedError on its
    error callback and becomes inactive. There is no automatic retry;
    consumers subscribe again when they want the feed back.
    """

    def __init__(self, store: DocumentStore, identity: IdentitySession) -> None:
        self._store = store
        self._identity = identity
        self._subscriptions: list[FeedSubscription] = []
        self._snapshot: CollectionSnapshot | None = None
        self._task: asyncio.Task | None = None

    @property
    def snapshot(self) -> CollectionSnapshot | None:
        """Latest mirrored snapshot, or None while the feed is not warm."""
        return self._snapshot

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> FeedSubscription:
        """Register a consumer; waits for the identity before touching the store."""
        await self._identity.resolve()

        subscription = FeedSubscription(self, on_snapshot, on_error)
        self._subscriptions.append(subscription)

        if not self.is_listening:
            log.step_start(SyncStage.FEED, "Subscribing to collection")
            self._task = asyncio.create_task(self._listen())
        elif self._snapshot is not None:
            await _invoke(subscription.on_snapshot, self._snapshot)
        return subscription

    async def snapshots(self) -> AsyncIterator[CollectionSnapshot]:
        """Async iterator of whole snapshots; raises FeedError when the feed fails.

        Leaving the loop (break, cancellation) unsubscribes.
        """
        queue: asyncio.Queue[CollectionSnapshot | FeedError] = asyncio.Queue()
        subscription = await self.subscribe(queue.put_nowait, queue.put_nowait)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, FeedError):
                    raise item
                yield item
        finally:
            await subscription.unsubscribe()

    async def close(self) -> None:
        """Drop every subscription and stop listening."""
        for subscription in self._subscriptions:
            subscription.active = False
        self._subscriptions.clear()
        await self._stop_listening()

    async def _remove(self, subscription: FeedSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        if not self._subscriptions:
            await self._stop_listening()

    async def _stop_listening(self) -> None:
        task, self._task = self._task, None
        self._snapshot = None
        if task is None or task.done():
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.detail("Stopped listening to collection")

    async def _listen(self) -> None:
        first_batch = True
        try:
            async for changes in self._store.listen():
                base = CollectionSnapshot() if first_batch else self._snapshot
                self._snapshot = (base or CollectionSnapshot()).apply(changes)
                if first_batch:
                    log.step_complete(
                        SyncStage.FEED, "Collection mirrored", documents=len(self._snapshot)
                    )
                    first_batch = False
                else:
                    log.detail("Applied change batch", changes=len(changes))
                await self._broadcast(self._snapshot)
        except asyncio.CancelledError:
            raise
        except FeedError as exc:
            await self._fail(exc)
        except Exception as exc:
            await self._fail(FeedError(f"Feed interrupted: {exc}"))
        else:
            await self._fail(FeedError("Feed stream ended"))

    async def _broadcast(self, snapshot: CollectionSnapshot) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                await _invoke(subscription.on_snapshot, snapshot)
            except Exception:
                logger.exception("Snapshot consumer raised")

    async def _fail(self, error: FeedError) -> None:
        log.step_error(SyncStage.FEED, "Collection subscription failed", error=error)
        subscriptions, self._subscriptions = self._subscriptions, []
        self._snapshot = None
        self._task = None
        for subscription in subscriptions:
            subscription.active = False
            if subscription.on_error is None:
                continue
            try:
                await _invoke(subscription.on_error, error)
            except Exception:
                logger.exception("Feed error consumer raised")


async def _invoke(callback: Callable[[Any], Any], value: Any) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result
