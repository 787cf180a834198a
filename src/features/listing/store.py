import asyncio
import logging
from typing import Any, Dict, List, Optional

from src.core.config import settings
from src.features.records.models import CacheState
from src.features.records.registry import ENTITY_DEFINITIONS, EntityDefinition

from .aggregator import aggregate

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Colección completa de un tipo de entidad, con su estado de caché.

    El estado solo cambia por el resultado del agregador. Las llamadas
    concurrentes comparten la misma carga en vuelo. Si el store se cierra
    mientras una carga está en vuelo, el resultado se descarta.
    """

    def __init__(self, client, definition: EntityDefinition, page_size: Optional[int] = None):
        self.client = client
        self.definition = definition
        self.page_size = page_size or settings.FETCH_PAGE_SIZE
        self.collection: List[Dict[str, Any]] = []
        self.state = CacheState.NOT_FETCHED
        self.last_error: Optional[Exception] = None
        self.partial = False
        self._alive = True
        self._inflight: Optional[asyncio.Task] = None

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def loading(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def ensure_loaded(self) -> List[Dict[str, Any]]:
        """Carga solo si nunca se cargó o si la última carga falló."""
        if self.loading:
            await self._inflight
        elif self.state in (CacheState.NOT_FETCHED, CacheState.FAILED):
            await self.refresh()
        return self.collection

    async def refresh(self) -> List[Dict[str, Any]]:
        """Recarga la colección; si ya hay una carga en vuelo, espera esa."""
        if not self.definition.list_endpoint:
            raise ValueError(f"'{self.definition.kind}' no tiene endpoint de listado.")

        if not self.loading:
            self.state = CacheState.FETCHING
            self._inflight = asyncio.ensure_future(self._load())
        await self._inflight
        return self.collection

    async def _load(self) -> None:
        try:
            result = await aggregate(self.client, self.definition.list_endpoint, self.page_size)
        except Exception as e:
            logger.error("❌ Carga de '%s' interrumpida: %s", self.definition.kind, e)
            if self._alive:
                self.last_error = e
                self.state = CacheState.FAILED
            raise

        if not self._alive:
            logger.info("Resultado descartado: el store de '%s' ya fue cerrado.", self.definition.kind)
            return

        self.last_error = result.error
        self.partial = not result.complete
        if result.failed:
            self.collection = []
            self.state = CacheState.FAILED
        else:
            self.collection = result.items
            self.state = CacheState.LOADED if result.items else CacheState.EMPTY

    def close(self) -> None:
        self._alive = False


class RecordStoreRegistry:
    """Un store por tipo de entidad (lo usa la capa HTTP)."""

    def __init__(self, client, definitions: Optional[Dict[str, EntityDefinition]] = None):
        self.client = client
        self.definitions = definitions if definitions is not None else ENTITY_DEFINITIONS
        self._stores: Dict[str, RecordStore] = {}

    def get(self, kind: str) -> RecordStore:
        store = self._stores.get(kind)
        if store is None:
            store = RecordStore(self.client, self.definitions[kind])
            self._stores[kind] = store
        return store

    def close(self) -> None:
        for store in self._stores.values():
            store.close()
        self._stores.clear()
