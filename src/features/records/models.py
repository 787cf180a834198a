from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# --- Página remota (variante etiquetada) ---

class PageShape(str, Enum):
    BARE_ARRAY = "bare_array"      # [ ... ]
    CONTENT = "content"            # { content: [...], last }
    DATA = "data"                  # { data: [...], last }
    UNRECOGNIZED = "unrecognized"  # cualquier otra cosa -> vacío


@dataclass
class PageDescriptor:
    items: List[Dict[str, Any]]
    is_last: bool
    page_size: int
    shape: PageShape = PageShape.BARE_ARRAY
    total_elements: Optional[int] = None

    @property
    def has_more(self) -> bool:
        # Una página incompleta siempre es la última, aunque `last` no venga
        return not self.is_last and len(self.items) == self.page_size


# --- Estado de la vista ---

class SortSpec(BaseModel):
    key: str
    direction: Literal["asc", "desc"] = "asc"


class DateRange(BaseModel):
    field: str
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.start is not None or self.end is not None


class ViewSpec(BaseModel):
    query: str = ""
    filters: Dict[str, str] = {}
    date_range: Optional[DateRange] = None
    sort: Optional[SortSpec] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)


class ListResult(BaseModel):
    rows: List[Dict[str, Any]]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class CacheState(str, Enum):
    NOT_FETCHED = "not_fetched"
    FETCHING = "fetching"
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


# --- Importación / Exportación ---

class ColumnSpec(BaseModel):
    key: str
    label: str


@dataclass
class ImportRow:
    line: int  # número de fila tal como lo ve el usuario (encabezado = 1)
    data: Dict[str, Any]
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ImportResult(BaseModel):
    success_count: int = 0
    error_count: int = 0
    errors: List[str] = []
