"""Concrete document store backed by SQLAlchemy, with in-process change notifications."""

import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from survey_sync.application.interfaces import DocumentStore
from survey_sync.application.schemas import RowSchema
from survey_sync.application.services.change_broadcaster import ChangeBroadcaster
from survey_sync.domain.entities import (
    ChangeType,
    DocumentChange,
    DocumentWrite,
    Row,
    SurveyDocument,
)
from survey_sync.domain.exceptions import FeedError, StoreWriteError
from survey_sync.infrastructure.database.models import SurveyDocumentModel

logger = logging.getLogger(__name__)


class SQLAlchemyDocumentStore(DocumentStore):
    """Implements the DocumentStore port on top of SQLAlchemy async sessions.

    Each write runs in its own transaction and, once committed, is published
    to every listener through the ChangeBroadcaster. ``updated_at`` is taken
    from the store clock and never moves backwards for a document.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        collection: str,
        broadcaster: ChangeBroadcaster | None = None,
    ):
        self._session_factory = session_factory
        self._collection = collection
        self._broadcaster = broadcaster or ChangeBroadcaster()

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def broadcaster(self) -> ChangeBroadcaster:
        return self._broadcaster

    def _to_entity(self, model: SurveyDocumentModel) -> SurveyDocument:
        """Map ORM model → domain entity."""
        return SurveyDocument(
            id=model.id,
            tema_central=model.tema_central or "",
            acesso_rows=_rows_from_json(model.acesso_rows),
            qualidade_rows=_rows_from_json(model.qualidade_rows),
            author=model.author or "",
            updated_at=_as_utc(model.updated_at),
        )

    def _apply(self, model: SurveyDocumentModel, data: DocumentWrite) -> None:
        """Overwrite every stored field of ``model`` with ``data``."""
        model.tema_central = data.tema_central
        model.acesso_rows = _rows_to_json(data.acesso_rows)
        model.qualidade_rows = _rows_to_json(data.qualidade_rows)
        model.author = data.author
        previous = _as_utc(model.updated_at) if model.updated_at else None
        now = datetime.now(timezone.utc)
        model.updated_at = max(now, previous) if previous else now

    async def create(self, data: DocumentWrite) -> str:
        document_id = uuid4().hex
        try:
            async with self._session_factory() as session, session.begin():
                model = SurveyDocumentModel(id=document_id, collection=self._collection)
                self._apply(model, data)
                session.add(model)
                document = self._to_entity(model)
        except SQLAlchemyError as exc:
            logger.error("Create in %s failed: %s", self._collection, exc)
            raise StoreWriteError("create", str(exc)) from exc

        self._broadcaster.publish([DocumentChange(ChangeType.ADDED, document_id, document)])
        return document_id

    async def replace(self, document_id: str, data: DocumentWrite) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                model = await self._get_model(session, document_id)
                change_type = ChangeType.MODIFIED
                if model is None:
                    # Full replace of a missing id creates it under that id.
                    model = SurveyDocumentModel(id=document_id, collection=self._collection)
                    session.add(model)
                    change_type = ChangeType.ADDED
                self._apply(model, data)
                document = self._to_entity(model)
        except SQLAlchemyError as exc:
            logger.error("Replace of %s failed: %s", document_id, exc)
            raise StoreWriteError("replace", str(exc), document_id=document_id) from exc

        self._broadcaster.publish([DocumentChange(change_type, document_id, document)])

    async def delete(self, document_id: str) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                model = await self._get_model(session, document_id)
                if model is None:
                    return
                await session.delete(model)
        except SQLAlchemyError as exc:
            logger.error("Delete of %s failed: %s", document_id, exc)
            raise StoreWriteError("delete", str(exc), document_id=document_id) from exc

        self._broadcaster.publish([DocumentChange(ChangeType.REMOVED, document_id)])

    async def get(self, document_id: str) -> SurveyDocument | None:
        async with self._session_factory() as session:
            model = await self._get_model(session, document_id)
            return self._to_entity(model) if model else None

    async def list_documents(self) -> list[SurveyDocument]:
        async with self._session_factory() as session:
            stmt = (
                select(SurveyDocumentModel)
                .where(SurveyDocumentModel.collection == self._collection)
                .order_by(SurveyDocumentModel.id)
            )
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]

    async def listen(self) -> AsyncIterator[list[DocumentChange]]:
        # Register before reading so writes committed in between are not lost.
        queue = self._broadcaster.open()
        try:
            try:
                documents = await self.list_documents()
            except SQLAlchemyError as exc:
                raise FeedError(f"Could not read collection: {exc}") from exc
            yield [DocumentChange(ChangeType.ADDED, d.id or "", d) for d in documents]

            async for batch in self._broadcaster.consume(queue):
                yield batch
        finally:
            self._broadcaster.close(queue)

    async def _get_model(
        self, session: AsyncSession, document_id: str
    ) -> SurveyDocumentModel | None:
        model = await session.get(SurveyDocumentModel, document_id)
        if model is None or model.collection != self._collection:
            return None
        return model


def _rows_to_json(rows: tuple[Row, ...] | list[Row]) -> list[dict]:
    return [RowSchema.from_entity(r).model_dump() for r in rows]


def _rows_from_json(raw: list | None) -> list[Row]:
    return [RowSchema.model_validate(item).to_entity() for item in raw or []]


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
