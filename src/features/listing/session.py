import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from src.core.config import settings
from src.core.debounce import debounce
from src.features.records.models import CacheState, ColumnSpec, DateRange, ImportResult, ListResult, ViewSpec
from src.features.records.registry import record_key
from src.features.transfer.exporter import ExportFile, build_export_filename, export_rows, select_export_rows
from src.features.transfer.importer import import_records

from . import query_engine
from .store import RecordStore

logger = logging.getLogger(__name__)


class ListingSession:
    """
    Estado de una pantalla de listado: búsqueda, filtros, orden, página y
    selección sobre la colección de un RecordStore.

    Cambiar búsqueda, filtros u orden vuelve a la página 1.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        page_size: Optional[int] = None,
        search_wait_ms: Optional[int] = None,
    ):
        self.store = store
        self.definition = store.definition
        self.spec = ViewSpec(
            page_size=page_size or settings.LIST_PAGE_SIZE,
            sort=self.definition.default_sort,
        )
        self.selection: Set[str] = set()
        wait = search_wait_ms if search_wait_ms is not None else settings.SEARCH_DEBOUNCE_MS
        self._debounced_query = debounce(self.set_query, wait)
        self._alive = True

    @property
    def state(self) -> CacheState:
        return self.store.state

    @property
    def alive(self) -> bool:
        return self._alive

    async def load(self, force: bool = False) -> Optional[ListResult]:
        if force:
            await self.store.refresh()
        else:
            await self.store.ensure_loaded()
        # La vista pudo cerrarse mientras esperábamos a la red
        if not self._alive:
            return None
        return self.view()

    # --- Estado de la vista ---

    def search(self, text: str) -> None:
        """Entrada de teclado: se aplica tras `search_wait_ms` sin escribir."""
        self._debounced_query(text)

    def set_query(self, query: str) -> None:
        if not self._alive:
            return
        self.spec = self.spec.model_copy(update={"query": query or "", "page": 1})

    def set_filter(self, field: str, value: Optional[str]) -> None:
        filters = dict(self.spec.filters)
        if value in (None, ""):
            filters.pop(field, None)
        else:
            filters[field] = value
        self.spec = self.spec.model_copy(update={"filters": filters, "page": 1})

    def set_date_range(self, field: str, start: Optional[date], end: Optional[date]) -> None:
        date_range = DateRange(field=field, start=start, end=end)
        self.spec = self.spec.model_copy(update={
            "date_range": date_range if date_range.is_active else None,
            "page": 1,
        })

    def clear_filters(self) -> None:
        self._debounced_query.cancel()
        self.spec = self.spec.model_copy(update={"query": "", "filters": {}, "date_range": None, "page": 1})

    def sort_by(self, key: str) -> None:
        sort = query_engine.toggle_sort(self.spec.sort, key)
        self.spec = self.spec.model_copy(update={"sort": sort, "page": 1})

    def set_page(self, page: int) -> None:
        self.spec = self.spec.model_copy(update={"page": max(1, page)})

    def view(self) -> ListResult:
        result = query_engine.apply(self.store.collection, self.spec, self.definition)
        if result.page != self.spec.page:
            self.spec = self.spec.model_copy(update={"page": result.page})
        return result

    def facet(self, field: str) -> List[str]:
        return query_engine.distinct_values(self.store.collection, field, self.definition)

    def page_numbers(self) -> List[int]:
        result = self.view()
        return query_engine.page_window(result.page, result.total_pages)

    # --- Selección y exportación ---

    def select(self, keys: Iterable[str]) -> None:
        self.selection.update(str(k).strip().lower() for k in keys if str(k).strip())

    def deselect(self, keys: Iterable[str]) -> None:
        self.selection.difference_update(str(k).strip().lower() for k in keys)

    def select_page(self) -> None:
        self.select(k for k in (record_key(r, self.definition) for r in self.view().rows) if k)

    def clear_selection(self) -> None:
        self.selection.clear()

    def rows_for_export(self) -> List[Dict[str, Any]]:
        rows = query_engine.filter_and_sort(self.store.collection, self.spec, self.definition)
        return select_export_rows(rows, self.selection, self.definition)

    def export(self, columns: Optional[Sequence[ColumnSpec]] = None, today: Optional[date] = None) -> ExportFile:
        columns = list(columns or self.definition.export_columns)
        filename = build_export_filename(self.definition.label, today=today)
        return export_rows(self.rows_for_export(), columns, filename, self.definition)

    # --- Importación ---

    async def import_file(self, filename: str, contents: Union[bytes, str]) -> ImportResult:
        return await import_records(
            self.store.client,
            self.definition,
            filename,
            contents,
            existing=self.store.collection,
            on_success=self.store.refresh,
        )

    def close(self) -> None:
        self._alive = False
        self._debounced_query.cancel()
