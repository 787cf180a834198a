from fastapi import APIRouter, Depends, HTTPException
from logging import getLogger

from src.core.errors import TransportError
from src.core.responses import build_pagination, wrap_response
from src.features.records.models import CacheState, ViewSpec
from src.features.records.registry import EntityDefinition

from . import query_engine
from .dependencies import get_store_registry, resolve_definition, resolve_view_spec
from .store import RecordStore, RecordStoreRegistry

router = APIRouter(prefix="/records", tags=["Listings"])
logger = getLogger(__name__)


async def load_store(store: RecordStore, refresh: bool = False) -> RecordStore:
    """Carga la colección y traduce un fallo total a un error HTTP distinguible."""
    if refresh:
        await store.refresh()
    else:
        await store.ensure_loaded()

    if store.state is CacheState.FAILED:
        error = store.last_error
        if isinstance(error, TransportError):
            raise HTTPException(
                status_code=503,
                detail="No se pudo conectar con la API de registros. Revisa la conexión o la configuración CORS del backend.",
            )
        raise HTTPException(status_code=502, detail=f"La API de registros respondió con error: {error}")
    return store


@router.get("/{kind}")
async def list_records(
        refresh: bool = False,
        definition: EntityDefinition = Depends(resolve_definition),
        view: ViewSpec = Depends(resolve_view_spec),
        registry: RecordStoreRegistry = Depends(get_store_registry),
):
    """
    Vista filtrada, ordenada y paginada de un tipo de entidad.
    La colección completa se agrega desde la API remota la primera vez.
    """
    store = await load_store(registry.get(definition.kind), refresh=refresh)
    result = query_engine.apply(store.collection, view, definition)

    message = f"Se encontraron {result.total_count} registros."
    if store.partial:
        message += " (listado parcial: la API falló a mitad de la paginación)"

    return wrap_response(
        result.rows,
        message=message,
        pagination=build_pagination(
            result.total_count,
            result.page,
            result.page_size,
            pages=query_engine.page_window(result.page, result.total_pages),
        ),
    )


@router.get("/{kind}/facets/{field}")
async def list_facet_values(
        field: str,
        definition: EntityDefinition = Depends(resolve_definition),
        registry: RecordStoreRegistry = Depends(get_store_registry),
):
    """Valores distintos de un campo, para llenar los selectores de filtro."""
    store = await load_store(registry.get(definition.kind))
    values = query_engine.distinct_values(store.collection, field, definition)
    return wrap_response(values, message=f"{len(values)} valores para '{field}'.")
