"""
Debounce sobre el event loop de asyncio.

Se usa para agrupar la búsqueda por teclado en una sola actualización
cada `wait_ms` de inactividad (300 ms por defecto).
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debounced:
    """
    Envoltura invocable: cada llamada cancela la pendiente y reprograma
    `fn` con los argumentos más recientes.
    """

    def __init__(self, fn: Callable[..., Any], wait_ms: int = 300):
        self.fn = fn
        self.wait = wait_ms / 1000.0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.wait, self._fire, args, kwargs)

    def _fire(self, args, kwargs) -> None:
        self._handle = None
        result = self.fn(*args, **kwargs)
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Fallo en callback con debounce: %s", exc, exc_info=exc)

    def cancel(self) -> None:
        """Descarta la invocación pendiente (si la hay)."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def debounce(fn: Callable[..., Any], wait_ms: int = 300) -> Debounced:
    return Debounced(fn, wait_ms)
