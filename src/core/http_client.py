import logging
from typing import Any, Dict, Optional

import httpx

from src.core.config import settings
from src.core.errors import InvalidPayloadError, RemoteStatusError, TransportError

logger = logging.getLogger(__name__)


def extract_error_message(response: httpx.Response) -> str:
    """
    Mensaje de diagnóstico del backend: `{message}` o `{error}` si vienen,
    si no el texto crudo o el estado HTTP.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if value:
                return str(value)

    text = (response.text or "").strip()
    if text:
        return text[:500]
    return f"Request failed {response.status_code}"


class RecordsApiClient:
    """Cliente async de la API remota (listados y altas)."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token or None
        self.timeout = timeout
        # Inyectable para pruebas (httpx.MockTransport)
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "RecordsApiClient":
        return cls(
            base_url=settings.RECORDS_API_URL,
            token=settings.RECORDS_API_TOKEN,
            timeout=settings.REQUEST_TIMEOUT,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, path: str) -> str:
        clean_path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{clean_path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.request(method, url, params=params, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            logger.warning("🌐 Error de conexión | %s %s: %s", method, url, e)
            raise TransportError(f"Could not reach the records API: {e}", path=path) from e

        if not resp.is_success:
            message = extract_error_message(resp)
            logger.warning("❌ API respondió %s | %s %s: %s", resp.status_code, method, url, message)
            raise RemoteStatusError(resp.status_code, message, path=path)

        if not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as e:
            raise InvalidPayloadError(f"Response from {path} is not valid JSON", path=path) from e

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._request("POST", path, payload=payload)


records_client = RecordsApiClient.from_settings()
