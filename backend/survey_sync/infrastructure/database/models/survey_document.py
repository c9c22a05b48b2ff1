"""SQLAlchemy ORM model for stored survey documents."""

from datetime import datetime

from sqlalchemy import DateTime, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from survey_sync.infrastructure.database.base import Base


class SurveyDocumentModel(Base):
    """ORM model — maps to the 'survey_documents' table.

    Rows are kept as JSON arrays in wire shape; ``collection`` holds the
    tenant-scoped collection path the document belongs to.
    """

    __tablename__ = "survey_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    collection: Mapped[str] = mapped_column(String(255), nullable=False)
    tema_central: Mapped[str] = mapped_column(Text, nullable=False, default="")
    acesso_rows: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    qualidade_rows: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    author: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_survey_documents_collection", "collection"),
    )

    def __repr__(self) -> str:
        return f"<SurveyDocumentModel(id={self.id}, tema='{self.tema_central}')>"
