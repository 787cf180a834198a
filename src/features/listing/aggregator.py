"""
Agregador de listados paginados.

Pide páginas en secuencia (page=0,1,2...) hasta que el backend indique
que no hay más, y devuelve la colección completa en memoria.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.core.errors import RecordsApiError
from src.features.records.models import PageDescriptor, PageShape

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def decode_page(payload: Any, page_size: int) -> PageDescriptor:
    """
    Interpreta la respuesta remota como una de tres variantes:
    lista directa, `{content, last}` o `{data, last}`. Otra forma -> vacío.
    """
    if isinstance(payload, list):
        return PageDescriptor(
            items=payload,
            is_last=len(payload) != page_size,
            page_size=page_size,
            shape=PageShape.BARE_ARRAY,
        )

    if isinstance(payload, dict):
        for key, shape in (("content", PageShape.CONTENT), ("data", PageShape.DATA)):
            items = payload.get(key)
            if isinstance(items, list):
                return PageDescriptor(
                    items=items,
                    is_last=bool(payload.get("last")),
                    page_size=page_size,
                    shape=shape,
                    total_elements=payload.get("totalElements"),
                )

    return PageDescriptor(items=[], is_last=True, page_size=page_size, shape=PageShape.UNRECOGNIZED)


@dataclass
class AggregationResult:
    items: List[Dict[str, Any]] = field(default_factory=list)
    pages_fetched: int = 0
    used_fallback: bool = False
    complete: bool = True
    error: Optional[RecordsApiError] = None

    @property
    def failed(self) -> bool:
        """Ni la primera página ni el reintento sin paginación respondieron."""
        return self.error is not None and self.pages_fetched == 0 and not self.used_fallback


async def _fetch_unpaginated(client, endpoint: str, page_size: int, first_error: RecordsApiError) -> AggregationResult:
    logger.warning("⚠️ Falló la primera página de %s (%s). Reintentando sin paginación...", endpoint, first_error)
    try:
        payload = await client.get_json(endpoint)
    except RecordsApiError as e:
        logger.error("❌ Falló también el reintento sin paginación de %s: %s", endpoint, e)
        return AggregationResult(complete=False, error=e)

    page = decode_page(payload, page_size)
    if page.shape is PageShape.UNRECOGNIZED:
        logger.warning("Forma de respuesta no reconocida en %s; se asume colección vacía.", endpoint)
    return AggregationResult(items=list(page.items), used_fallback=True)


async def aggregate(client, endpoint: str, page_size: int = DEFAULT_PAGE_SIZE) -> AggregationResult:
    """
    Recorre todas las páginas de `endpoint`.

    - Si falla la página 0: un reintento sin `page`/`size`; si también
      falla, colección vacía con el error adjunto.
    - Si falla una página posterior: se corta y se devuelve lo acumulado.
    """
    result = AggregationResult()
    page_number = 0

    while True:
        params = {"page": page_number, "size": page_size}
        try:
            payload = await client.get_json(endpoint, params=params)
        except RecordsApiError as e:
            if page_number == 0:
                return await _fetch_unpaginated(client, endpoint, page_size, e)
            logger.warning(
                "⚠️ Falló la página %s de %s; se devuelven %s registros parciales: %s",
                page_number, endpoint, len(result.items), e,
            )
            result.complete = False
            result.error = e
            break

        page = decode_page(payload, page_size)
        if page.shape is PageShape.UNRECOGNIZED:
            logger.warning("Forma de respuesta no reconocida en %s (página %s).", endpoint, page_number)

        result.items.extend(page.items)
        result.pages_fetched += 1

        if not page.has_more:
            break
        page_number += 1

    logger.info("📦 %s: %s registros en %s páginas", endpoint, len(result.items), result.pages_fetched)
    return result


async def fetch_all(client, endpoint: str, page_size: int = DEFAULT_PAGE_SIZE) -> List[Dict[str, Any]]:
    result = await aggregate(client, endpoint, page_size)
    return result.items
