"""Dependency wiring — builds infrastructure adapters and hands them to the application layer."""

import logging

from survey_sync.config import Settings, collection_path, get_settings
from survey_sync.application.interfaces import DocumentStore, IdentityProvider
from survey_sync.application.services import IdentitySession, SyncContext
from survey_sync.infrastructure.database.repositories import SQLAlchemyDocumentStore
from survey_sync.infrastructure.database.session import async_session_factory
from survey_sync.infrastructure.identity import IdentityToolkitProvider, LocalIdentityProvider
from survey_sync.infrastructure.remote import HttpDocumentStore

logger = logging.getLogger(__name__)


_document_stores: dict[str, SQLAlchemyDocumentStore] = {}


def get_document_store(app_id: str) -> SQLAlchemyDocumentStore:
    """One SQL-backed store (and change broadcaster) per deployment id, per process."""
    store = _document_stores.get(app_id)
    if store is None:
        store = SQLAlchemyDocumentStore(async_session_factory, collection=collection_path(app_id))
        _document_stores[app_id] = store
    return store


def shutdown_document_stores() -> None:
    """Disconnect every live change listener (used on server shutdown)."""
    for store in _document_stores.values():
        store.broadcaster.shutdown()


def build_document_store(settings: Settings) -> DocumentStore:
    if settings.document_store == "http":
        return HttpDocumentStore(
            base_url=settings.store_base_url,
            collection_path=settings.collection_path,
            timeout=settings.store_timeout_seconds,
        )
    return get_document_store(settings.app_id)


def build_identity_provider(settings: Settings) -> IdentityProvider:
    if settings.identity_api_key.strip():
        return IdentityToolkitProvider(
            api_key=settings.identity_api_key,
            base_url=settings.identity_base_url,
        )
    logger.warning("IDENTITY_API_KEY is not configured; using the offline local identity provider.")
    return LocalIdentityProvider()


def build_sync_context(settings: Settings | None = None) -> SyncContext:
    """Explicitly construct the context a client threads through the sync core."""
    settings = settings or get_settings()
    identity = IdentitySession(
        build_identity_provider(settings),
        bootstrap_token=settings.initial_auth_token,
    )
    return SyncContext(
        store=build_document_store(settings),
        identity=identity,
        min_scaffold_rows=settings.min_scaffold_rows,
    )

