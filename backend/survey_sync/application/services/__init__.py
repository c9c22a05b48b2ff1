from .change_broadcaster import ChangeBroadcaster
from .collection_feed import CollectionFeed, FeedSubscription
from .draft_state import DraftState, DraftStatus
from .identity_session import IdentitySession
from .sync_controller import SyncController
from .sync_context import SyncContext

__all__ = [
    "ChangeBroadcaster",
    "CollectionFeed",
    "FeedSubscription",
    "DraftState",
    "DraftStatus",
    "IdentitySession",
    "SyncController",
    "SyncContext",
]
