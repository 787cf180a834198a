"""
Motor de consultas sobre la colección en memoria:
búsqueda libre -> filtros por columna -> rango de fechas -> orden -> página.
"""
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from src.features.records.models import DateRange, ListResult, SortSpec, ViewSpec
from src.features.records.registry import GENERIC, EntityDefinition, resolve_field
from src.features.transfer.validators import parse_day


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def matches_query(record: Mapping[str, Any], query: str, definition: EntityDefinition) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    return any(
        q in _as_text(resolve_field(record, name, definition)).lower()
        for name in definition.searchable_fields
    )


def matches_filters(record: Mapping[str, Any], filters: Mapping[str, Any], definition: EntityDefinition) -> bool:
    for name, expected in (filters or {}).items():
        if expected is None or expected == "":
            continue
        actual = _as_text(resolve_field(record, name, definition))
        if name in definition.case_insensitive_filters:
            if actual.lower() != str(expected).lower():
                return False
        elif actual != str(expected):
            return False
    return True


def matches_date_range(record: Mapping[str, Any], date_range: Optional[DateRange], definition: EntityDefinition) -> bool:
    if date_range is None or not date_range.is_active:
        return True
    day = parse_day(resolve_field(record, date_range.field, definition))
    # Sin fecha => fuera mientras el rango esté activo
    if day is None:
        return False
    if date_range.start and day < date_range.start:
        return False
    if date_range.end and day > date_range.end:
        return False
    return True


def _sort_value(value: Any):
    if value is None or (isinstance(value, str) and not value.strip()):
        return (2, "")
    if isinstance(value, (int, float)):
        return (0, float(value))
    return (1, str(value).lower())


def sort_rows(rows: Sequence[Dict[str, Any]], sort: Optional[SortSpec], definition: EntityDefinition = GENERIC) -> List[Dict[str, Any]]:
    if sort is None or not sort.key:
        return list(rows)
    # sorted() es estable también con reverse=True: los empates conservan el orden original
    return sorted(
        rows,
        key=lambda r: _sort_value(resolve_field(r, sort.key, definition)),
        reverse=sort.direction == "desc",
    )


def filter_and_sort(collection: Sequence[Dict[str, Any]], view: ViewSpec, definition: EntityDefinition = GENERIC) -> List[Dict[str, Any]]:
    """Todas las filas visibles (sin paginar). Es lo que exporta la vista."""
    filtered = [
        r for r in collection
        if matches_query(r, view.query, definition)
        and matches_filters(r, view.filters, definition)
        and matches_date_range(r, view.date_range, definition)
    ]
    return sort_rows(filtered, view.sort, definition)


def total_pages_for(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if page_size > 0 else 0


def clamp_page(page: int, total_pages: int) -> int:
    if total_pages <= 0:
        return 1
    return min(max(page, 1), total_pages)


def apply(collection: Sequence[Dict[str, Any]], view: ViewSpec, definition: EntityDefinition = GENERIC) -> ListResult:
    rows = filter_and_sort(collection, view, definition)
    total_count = len(rows)
    total_pages = total_pages_for(total_count, view.page_size)
    page = clamp_page(view.page, total_pages)

    start = (page - 1) * view.page_size
    return ListResult(
        rows=rows[start:start + view.page_size],
        total_count=total_count,
        page=page,
        page_size=view.page_size,
        total_pages=total_pages,
    )


def toggle_sort(current: Optional[SortSpec], key: str) -> SortSpec:
    """Misma columna -> invierte dirección; columna nueva -> ascendente."""
    if current is not None and current.key == key:
        return SortSpec(key=key, direction="desc" if current.direction == "asc" else "asc")
    return SortSpec(key=key, direction="asc")


def distinct_values(collection: Sequence[Dict[str, Any]], field: str, definition: EntityDefinition = GENERIC) -> List[str]:
    """Opciones para los selectores de filtro, en orden de aparición."""
    seen: Dict[str, None] = {}
    for record in collection:
        value = _as_text(resolve_field(record, field, definition)).strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


def active_filter_count(view: ViewSpec) -> int:
    count = 1 if view.query.strip() else 0
    count += sum(1 for v in view.filters.values() if v not in (None, ""))
    if view.date_range is not None and view.date_range.is_active:
        count += 1
    return count


def page_window(current: int, total: int, max_visible: int = 5) -> List[int]:
    """Números de página visibles alrededor de la actual."""
    if total <= max_visible:
        return list(range(1, total + 1))
    half = max_visible // 2
    if current <= half + 1:
        return list(range(1, max_visible + 1))
    if current >= total - half:
        return list(range(total - max_visible + 1, total + 1))
    return list(range(current - half, current + half + 1))
