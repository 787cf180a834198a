from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from src.core.config import settings
from src.features.records.models import ColumnSpec
from src.features.records.registry import GENERIC, EntityDefinition, record_key, resolve_field

from .codec import serialize_delimited

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


@dataclass
class ExportFile:
    filename: str
    content: str
    media_type: str = CSV_MEDIA_TYPE
    row_count: int = 0


def build_export_filename(label: str, today: Optional[date] = None, extension: Optional[str] = None) -> str:
    """`{entidad}_{YYYY-MM-DD}.{ext}`; por convención la extensión es xlsx."""
    day = today or date.today()
    ext = (extension or settings.EXPORT_FILE_EXTENSION).lstrip(".")
    return f"{label}_{day.isoformat()}.{ext}"


def select_export_rows(
    rows: Sequence[Dict[str, Any]],
    selected_keys: Optional[Iterable[str]],
    definition: EntityDefinition = GENERIC,
) -> List[Dict[str, Any]]:
    """Con selección no vacía se exportan solo las filas seleccionadas."""
    wanted = {str(k).strip().lower() for k in (selected_keys or []) if str(k).strip()}
    if not wanted:
        return list(rows)
    return [r for r in rows if record_key(r, definition) in wanted]


def export_rows(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[ColumnSpec],
    filename: str,
    definition: EntityDefinition = GENERIC,
) -> ExportFile:
    if not rows:
        return ExportFile(filename=filename, content="", row_count=0)

    content = serialize_delimited(
        [c.label for c in columns],
        ([resolve_field(row, c.key, definition) for c in columns] for row in rows),
    )
    return ExportFile(filename=filename, content=content, row_count=len(rows))


def inverse_mapping(columns: Sequence[ColumnSpec]) -> Dict[str, str]:
    """Tabla de mapeo que reimporta un archivo exportado con `columns`."""
    return {c.label.strip().lower(): c.key for c in columns}
