"""Domain entities for survey documents — the unit synchronized between clients."""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RowList(str, Enum):
    """The two row axes of a survey document."""

    ACESSO = "acesso"
    QUALIDADE = "qualidade"

    @property
    def attribute(self) -> str:
        """Name of the SurveyDocument attribute holding this axis."""
        return f"{self.value}_rows"


# Problem categories offered for each axis. The presentation layer renders
# them as option lists; the core stores whatever string it is given.
ACESSO_OPTIONS: tuple[str, ...] = (
    "Indisponibilidade de Origem (Dados não capturados)",
    "Necessidade de Solicitação Personalizada (TI/DBA)",
    "Dificuldade de Extração (Latência/Volume excessivo)",
    "Restrição de Acesso/Segurança (LGPD/Compliance)",
    "API/Interface Inexistente ou Instável",
    "Dependência de Processamento Manual/Terceiros",
)

QUALIDADE_OPTIONS: tuple[str, ...] = (
    "Inconsistência Inter-sistemas (Discrepância entre fontes)",
    "Violação de Domínio (Dados fora da faixa esperada)",
    "Baixa Completitude (Presença excessiva de nulos/vazios)",
    "Inconformidade de Formato (Sujidade/Falta de padrão)",
    "Anacronismo (Dados obsoletos/fora de tempo)",
    "Redundância ou Duplicidade de Registros",
)

PROBLEM_OPTIONS: dict[RowList, tuple[str, ...]] = {
    RowList.ACESSO: ACESSO_OPTIONS,
    RowList.QUALIDADE: QUALIDADE_OPTIONS,
}

ROW_FIELDS: frozenset[str] = frozenset({"variavel", "problema", "detalhe"})


@dataclass
class Row:
    """One line item of a row list.

    Rows have no remote identity; ``id`` is assigned by the client and is
    only unique within its containing list.
    """

    id: int
    variavel: str = ""
    problema: str = ""
    detalhe: str = ""


@dataclass
class SurveyDocument:
    """A persisted survey ("project") as seen through the store.

    ``id`` is None until the store has created the document.
    ``updated_at`` is assigned by the store on every write and is None for
    documents whose server timestamp has not been observed yet.
    """

    tema_central: str = ""
    acesso_rows: list[Row] = field(default_factory=list)
    qualidade_rows: list[Row] = field(default_factory=list)
    author: str = ""
    id: str | None = None
    updated_at: datetime | None = None

    def rows(self, row_list: RowList) -> list[Row]:
        return getattr(self, row_list.attribute)

    def clone(self) -> "SurveyDocument":
        """Deep copy, so callers can mutate rows without touching the original."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class DocumentWrite:
    """Full-replace payload sent to the store on create and replace.

    Carries no ``updated_at``; the store stamps it.
    """

    tema_central: str
    acesso_rows: tuple[Row, ...]
    qualidade_rows: tuple[Row, ...]
    author: str
