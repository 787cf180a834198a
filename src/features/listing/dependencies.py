from datetime import date
from logging import getLogger
from typing import Dict, List, Optional

from fastapi import Depends, HTTPException, Query

from src.core.config import settings
from src.core.http_client import records_client
from src.features.records.models import DateRange, SortSpec, ViewSpec
from src.features.records.registry import EntityDefinition, get_definition

from .store import RecordStoreRegistry

logger = getLogger(__name__)

# Instancia global (un store por tipo de entidad)
store_registry = RecordStoreRegistry(records_client)


def get_store_registry() -> RecordStoreRegistry:
    """Dependencia para inyectar en los endpoints"""
    return store_registry


def resolve_definition(kind: str) -> EntityDefinition:
    try:
        return get_definition(kind)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Tipo de entidad desconocido: '{kind}'")


def parse_filters(raw_filters: List[str]) -> Dict[str, str]:
    """`campo:valor` repetible. Entradas sin ':' se ignoran."""
    filters: Dict[str, str] = {}
    for raw in raw_filters or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            logger.debug("Filtro ignorado (sin formato campo:valor): %s", raw)
            continue
        filters[name.strip()] = value
    return filters


async def resolve_view_spec(
        definition: EntityDefinition = Depends(resolve_definition),
        q: str = Query("", description="Búsqueda libre (nombre, email, código según el tipo)."),
        filters: List[str] = Query([], alias="filter", description="Filtro exacto por columna, formato campo:valor. Repetible."),
        date_field: Optional[str] = Query(None, description="Campo de fecha para el rango."),
        date_from: Optional[date] = Query(None, description="Inicio del rango (inclusive)."),
        date_to: Optional[date] = Query(None, description="Fin del rango (inclusive)."),
        sort: Optional[str] = Query(None, description="Campo de orden. Por defecto el del tipo de entidad."),
        direction: str = Query("asc", pattern="^(asc|desc)$"),
        page: int = Query(1, ge=1),
        page_size: Optional[int] = Query(None, ge=1, le=500),
) -> ViewSpec:
    date_range = None
    if date_field and (date_from or date_to):
        date_range = DateRange(field=date_field, start=date_from, end=date_to)

    sort_spec = SortSpec(key=sort, direction=direction) if sort else definition.default_sort

    return ViewSpec(
        query=q,
        filters=parse_filters(filters),
        date_range=date_range,
        sort=sort_spec,
        page=page,
        page_size=page_size or settings.LIST_PAGE_SIZE,
    )
