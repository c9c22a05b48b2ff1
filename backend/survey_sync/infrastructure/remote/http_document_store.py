"""HTTP document store client — implements the DocumentStore port against the survey-sync API.

Writes are plain JSON requests; the live collection feed is consumed as a
Server-Sent-Events stream whose ``changes`` events carry change batches.
"""

import logging
from collections.abc import AsyncIterator

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from survey_sync.application.interfaces import DocumentStore
from survey_sync.application.schemas import (
    CreatedResponse,
    DocumentChangeSchema,
    SurveyDocumentResponse,
    SurveyDocumentWrite,
)
from survey_sync.domain.entities import DocumentChange, DocumentWrite, SurveyDocument
from survey_sync.domain.exceptions import FeedError, StoreError, StoreWriteError

logger = logging.getLogger(__name__)

_CHANGES_EVENT = "changes"
_change_batch = TypeAdapter(list[DocumentChangeSchema])


class HttpDocumentStore(DocumentStore):
    """Infrastructure adapter — talks to a remote survey document collection.

    Uses an injected httpx.AsyncClient when given (tests, shared pools);
    otherwise opens a short-lived client per call.
    """

    def __init__(
        self,
        base_url: str,
        collection_path: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._collection_url = f"{base_url.rstrip('/')}/{collection_path.strip('/')}"
        self._timeout = timeout
        self._http_client = http_client

    @property
    def collection_url(self) -> str:
        return self._collection_url

    def _document_url(self, document_id: str) -> str:
        return f"{self._collection_url}/{document_id}"

    def _get_client(self, *, streaming: bool = False) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        timeout = httpx.Timeout(self._timeout, read=None) if streaming else self._timeout
        return httpx.AsyncClient(timeout=timeout)

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        document_id: str | None = None,
        body: dict | None = None,
        error_class: type[StoreError] = StoreWriteError,
        allow_not_found: bool = False,
    ) -> httpx.Response | None:
        client = self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.request(method, url, json=body)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise error_class(operation, str(exc), document_id=document_id) from exc
        finally:
            if should_close:
                await client.aclose()

        if allow_not_found and response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise error_class(
                operation,
                _error_message(response),
                document_id=document_id,
                status_code=response.status_code,
            )
        return response

    async def create(self, data: DocumentWrite) -> str:
        response = await self._send(
            "create", "POST", self._collection_url, body=_serialize(data)
        )
        try:
            return CreatedResponse.model_validate(response.json()).id
        except (ValueError, PydanticValidationError) as exc:
            raise StoreWriteError("create", f"Malformed create response: {exc}") from exc

    async def replace(self, document_id: str, data: DocumentWrite) -> None:
        await self._send(
            "replace",
            "PUT",
            self._document_url(document_id),
            document_id=document_id,
            body=_serialize(data),
        )

    async def delete(self, document_id: str) -> None:
        await self._send(
            "delete",
            "DELETE",
            self._document_url(document_id),
            document_id=document_id,
            allow_not_found=True,
        )

    async def get(self, document_id: str) -> SurveyDocument | None:
        response = await self._send(
            "get",
            "GET",
            self._document_url(document_id),
            document_id=document_id,
            error_class=StoreError,
            allow_not_found=True,
        )
        if response is None:
            return None
        try:
            return SurveyDocumentResponse.model_validate(response.json()).to_entity()
        except (ValueError, PydanticValidationError) as exc:
            raise StoreError("get", f"Malformed document: {exc}", document_id=document_id) from exc

    async def listen(self) -> AsyncIterator[list[DocumentChange]]:
        """Yield change batches from the SSE stream until it ends or fails."""
        url = f"{self._collection_url}/stream"
        client = self._get_client(streaming=True)
        should_close = self._http_client is None

        try:
            async with client.stream(
                "GET", url, headers={"Accept": "text/event-stream"}
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise FeedError(
                        f"Subscription refused: {body.decode(errors='replace')}",
                        status_code=response.status_code,
                    )

                async for event, data in _iter_sse_events(response.aiter_lines()):
                    if event != _CHANGES_EVENT:
                        continue
                    yield _parse_changes(data)
        except httpx.HTTPError as exc:
            raise FeedError(f"Feed transport failed: {exc}") from exc
        finally:
            if should_close:
                await client.aclose()

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


async def _iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Group SSE lines into (event, data) pairs; comments are keepalives."""
    event = "message"
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines:
                yield event, "\n".join(data_lines)
            event, data_lines = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data_lines.append(value)
    if data_lines:
        yield event, "\n".join(data_lines)


def _parse_changes(data: str) -> list[DocumentChange]:
    try:
        return [c.to_entity() for c in _change_batch.validate_json(data)]
    except PydanticValidationError as exc:
        raise FeedError(f"Malformed change batch: {exc}") from exc


def _serialize(data: DocumentWrite) -> dict:
    return SurveyDocumentWrite.from_entity(data).model_dump(by_alias=True, mode="json")


def _error_message(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return str(detail) if detail else (response.text or response.reason_phrase)
