from logging import getLogger
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from src.core.config import settings
from src.core.errors import ImportFileError
from src.core.responses import wrap_response
from src.features.listing import query_engine
from src.features.listing.dependencies import get_store_registry, resolve_definition, resolve_view_spec
from src.features.listing.router import load_store
from src.features.listing.store import RecordStoreRegistry
from src.features.records.models import ViewSpec
from src.features.records.registry import EntityDefinition

from .exporter import build_export_filename, export_rows, select_export_rows
from .importer import import_records

router = APIRouter(prefix="/records", tags=["Import & Export"])
logger = getLogger(__name__)


@router.post("/{kind}/import")
async def import_file(
        file: UploadFile = File(...),
        definition: EntityDefinition = Depends(resolve_definition),
        registry: RecordStoreRegistry = Depends(get_store_registry),
):
    """
    Importación masiva desde CSV. Las filas inválidas o rechazadas por la
    API se reportan en `errors` sin detener el resto.
    """
    store = registry.get(definition.kind)
    await store.ensure_loaded()

    # Un byte de más basta para que read_table detecte el exceso
    contents = await file.read(settings.IMPORT_MAX_BYTES + 1)
    logger.info("📤 Import recibido | kind=%s file=%s bytes=%s", definition.kind, file.filename, len(contents))

    try:
        result = await import_records(
            store.client,
            definition,
            file.filename or "",
            contents,
            existing=store.collection,
            on_success=store.refresh,
        )
    except ImportFileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    message = f"{result.success_count} registros creados, {result.error_count} con errores."
    return wrap_response(result, message=message)


@router.get("/{kind}/export")
async def export_file(
        selected: List[str] = Query([], description="Claves naturales a exportar. Vacío = toda la vista filtrada."),
        definition: EntityDefinition = Depends(resolve_definition),
        view: ViewSpec = Depends(resolve_view_spec),
        registry: RecordStoreRegistry = Depends(get_store_registry),
):
    """Descarga la vista actual (o la selección) como texto delimitado."""
    store = await load_store(registry.get(definition.kind))

    rows = query_engine.filter_and_sort(store.collection, view, definition)
    rows = select_export_rows(rows, selected, definition)

    filename = build_export_filename(definition.label)
    export = export_rows(rows, definition.export_columns, filename, definition)
    logger.info("📄 Export %s: %s filas -> %s", definition.kind, export.row_count, export.filename)

    return StreamingResponse(
        iter([export.content]),
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
