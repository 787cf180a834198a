"""
Taxonomía de errores de la capa de datos.

Los errores de fila (importación) y de página (listados) se recuperan
localmente; solo los fallos de operación completa llegan al consumidor.
"""
from typing import Optional


class RecordsApiError(Exception):
    """Fallo al hablar con la API remota de registros."""

    category = "remote"

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class TransportError(RecordsApiError):
    """Red caída, CORS, DNS o timeout: no hubo respuesta HTTP utilizable."""

    category = "transport"


class RemoteStatusError(RecordsApiError):
    """La API respondió con un estado no-2xx."""

    category = "status"

    def __init__(self, status_code: int, message: str, *, path: Optional[str] = None):
        super().__init__(message, path=path)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


class InvalidPayloadError(RecordsApiError):
    """Respuesta 2xx cuyo cuerpo no es JSON."""

    category = "payload"


class ImportFileError(Exception):
    """Fallo fatal de una importación (archivo ilegible, extensión, cero filas...)."""
