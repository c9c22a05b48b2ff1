"""Pydantic DTOs for the survey document wire format (camelCase JSON)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from survey_sync.domain.entities import (
    ChangeType,
    DocumentChange,
    DocumentWrite,
    Row,
    SurveyDocument,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RowSchema(_WireModel):
    """One row as stored inside ``acessoRows`` / ``qualidadeRows``."""

    id: int
    variavel: str = ""
    problema: str = ""
    detalhe: str = ""

    def to_entity(self) -> Row:
        return Row(
            id=self.id,
            variavel=self.variavel,
            problema=self.problema,
            detalhe=self.detalhe,
        )

    @classmethod
    def from_entity(cls, row: Row) -> "RowSchema":
        return cls(id=row.id, variavel=row.variavel, problema=row.problema, detalhe=row.detalhe)


class SurveyDocumentWrite(_WireModel):
    """Body of a create or full-replace request.

    ``updatedAt`` is never accepted from clients; the store stamps it.
    """

    tema_central: str = Field("", alias="temaCentral")
    acesso_rows: list[RowSchema] = Field(default_factory=list, alias="acessoRows")
    qualidade_rows: list[RowSchema] = Field(default_factory=list, alias="qualidadeRows")
    author: str = ""

    @field_validator("tema_central", "author", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("acesso_rows", "qualidade_rows", mode="before")
    @classmethod
    def _null_rows_are_empty(cls, value: object) -> object:
        return [] if value is None else value

    def to_entity(self) -> DocumentWrite:
        return DocumentWrite(
            tema_central=self.tema_central,
            acesso_rows=tuple(r.to_entity() for r in self.acesso_rows),
            qualidade_rows=tuple(r.to_entity() for r in self.qualidade_rows),
            author=self.author,
        )

    @classmethod
    def from_entity(cls, data: DocumentWrite) -> "SurveyDocumentWrite":
        return cls(
            tema_central=data.tema_central,
            acesso_rows=[RowSchema.from_entity(r) for r in data.acesso_rows],
            qualidade_rows=[RowSchema.from_entity(r) for r in data.qualidade_rows],
            author=data.author,
        )


class SurveyDocumentResponse(SurveyDocumentWrite):
    """A stored document as returned by the store, including its id."""

    id: str
    updated_at: datetime | None = Field(None, alias="updatedAt")

    def to_entity(self) -> SurveyDocument:  # type: ignore[override]
        return SurveyDocument(
            id=self.id,
            tema_central=self.tema_central,
            acesso_rows=[r.to_entity() for r in self.acesso_rows],
            qualidade_rows=[r.to_entity() for r in self.qualidade_rows],
            author=self.author,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_document(cls, document: SurveyDocument) -> "SurveyDocumentResponse":
        return cls(
            id=document.id or "",
            tema_central=document.tema_central,
            acesso_rows=[RowSchema.from_entity(r) for r in document.acesso_rows],
            qualidade_rows=[RowSchema.from_entity(r) for r in document.qualidade_rows],
            author=document.author,
            updated_at=document.updated_at,
        )


class CreatedResponse(BaseModel):
    id: str


class DocumentChangeSchema(_WireModel):
    """One entry of an SSE ``changes`` event."""

    type: ChangeType
    id: str
    document: SurveyDocumentResponse | None = None

    def to_entity(self) -> DocumentChange:
        return DocumentChange(
            type=self.type,
            document_id=self.id,
            document=self.document.to_entity() if self.document else None,
        )

    @classmethod
    def from_entity(cls, change: DocumentChange) -> "DocumentChangeSchema":
        return cls(
            type=change.type,
            id=change.document_id,
            document=(
                SurveyDocumentResponse.from_document(change.document)
                if change.document is not None
                else None
            ),
        )
