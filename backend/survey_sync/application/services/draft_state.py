"""Draft state — the in-memory, possibly unsaved working copy of one document."""

import time
from enum import Enum

from survey_sync.domain.entities import ROW_FIELDS, Row, RowList, SurveyDocument


class DraftStatus(str, Enum):
    """Whether the draft is tied to a stored document."""

    UNBOUND = "unbound"
    BOUND = "bound"


class DraftState:
    """Editable copy of a single survey document.

    The draft is Unbound until it is loaded from, or saved into, the store;
    after that it is Bound to the store-assigned id. Field mutations never
    change the bound status and never talk to the store.

    ``reset()`` and ``load()`` discard unsaved edits without asking; callers
    that want a confirmation step should check ``dirty`` first.
    """

    def __init__(self, min_rows: int = 1):
        if min_rows < 0:
            raise ValueError("min_rows must be >= 0")
        self._min_rows = min_rows
        self._last_row_id = 0
        self.document_id: str | None = None
        self.tema_central = ""
        self.acesso_rows: list[Row] = []
        self.qualidade_rows: list[Row] = []
        self.revision = 0
        self.edits = 0
        self.dirty = False
        self.reset()

    @property
    def status(self) -> DraftStatus:
        return DraftStatus.BOUND if self.document_id is not None else DraftStatus.UNBOUND

    @property
    def is_bound(self) -> bool:
        return self.document_id is not None

    def rows(self, list_name: RowList | str) -> list[Row]:
        return getattr(self, _row_list(list_name).attribute)

    # ── State transitions ────────────────────────────────────────────

    def reset(self) -> None:
        """Back to a blank Unbound draft with the minimum row scaffolding."""
        self.document_id = None
        self.tema_central = ""
        self.acesso_rows = [Row(id=self._next_row_id()) for _ in range(self._min_rows)]
        self.qualidade_rows = [Row(id=self._next_row_id()) for _ in range(self._min_rows)]
        self._replaced()

    def load(self, document: SurveyDocument) -> None:
        """Bind to ``document`` and copy all of its values into the draft."""
        if document.id is None:
            raise ValueError("Cannot load a document that has no id")
        snapshot = document.clone()
        self.document_id = snapshot.id
        self.tema_central = snapshot.tema_central or ""
        self.acesso_rows = list(snapshot.acesso_rows or [])
        self.qualidade_rows = list(snapshot.qualidade_rows or [])
        self._replaced()

    def bind(self, document_id: str) -> None:
        """Unbound → Bound(document_id), used once the store has created the document."""
        if self.document_id is not None and self.document_id != document_id:
            raise ValueError(
                f"Draft is already bound to '{self.document_id}', cannot bind to '{document_id}'"
            )
        self.document_id = document_id

    def mark_saved(self, revision: int, edits: int) -> None:
        """Clear ``dirty`` if nothing changed since the saved payload was read."""
        if self.revision == revision and self.edits == edits:
            self.dirty = False

    # ── Field mutations ──────────────────────────────────────────────

    def set_title(self, text: str) -> None:
        self.tema_central = text
        self._edited()

    def add_row(self, list_name: RowList | str) -> Row:
        row = Row(id=self._next_row_id())
        rows = self.rows(list_name)
        rows.append(row)
        self._edited()
        return row

    def remove_row(self, list_name: RowList | str, row_id: int) -> None:
        """Remove the row with ``row_id``; unknown ids are ignored."""
        row_list = _row_list(list_name)
        rows = self.rows(row_list)
        remaining = [r for r in rows if r.id != row_id]
        if len(remaining) != len(rows):
            setattr(self, row_list.attribute, remaining)
            self._edited()

    def update_row(
        self, list_name: RowList | str, row_id: int, field: str, value: str
    ) -> None:
        """Set ``field`` on the row with ``row_id``; unknown ids are ignored."""
        if field not in ROW_FIELDS:
            raise ValueError(f"Unknown row field '{field}'")
        for row in self.rows(list_name):
            if row.id == row_id:
                setattr(row, field, value)
                self._edited()

    # ── Helpers ──────────────────────────────────────────────────────

    def to_document(self) -> SurveyDocument:
        """Detached copy of the current draft values."""
        return SurveyDocument(
            id=self.document_id,
            tema_central=self.tema_central,
            acesso_rows=list(self.acesso_rows),
            qualidade_rows=list(self.qualidade_rows),
        ).clone()

    def _replaced(self) -> None:
        self.revision += 1
        self.dirty = False
        self.edits = 0
        for row in (*self.acesso_rows, *self.qualidade_rows):
            self._last_row_id = max(self._last_row_id, row.id)

    def _edited(self) -> None:
        self.edits += 1
        self.dirty = True

    def _next_row_id(self) -> int:
        # Millisecond clock, forced strictly above every id handed out or loaded.
        self._last_row_id = max(time.time_ns() // 1_000_000, self._last_row_id + 1)
        return self._last_row_id


def _row_list(list_name: RowList | str) -> RowList:
    try:
        return RowList(list_name)
    except ValueError:
        raise ValueError(f"Unknown row list '{list_name}'") from None
