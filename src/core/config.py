from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "School Records Console"
    ENV_MODE: str = "dev"

    # API remota de registros (backend "midland")
    RECORDS_API_URL: str = "http://localhost:8080"
    RECORDS_API_TOKEN: str = ""
    REQUEST_TIMEOUT: float = 30.0

    # Listados
    FETCH_PAGE_SIZE: int = 100
    LIST_PAGE_SIZE: int = 10
    SEARCH_DEBOUNCE_MS: int = 300

    # Importación / Exportación
    IMPORT_MAX_BYTES: int = 5 * 1024 * 1024
    IMPORT_MAX_ROWS: int = 5000
    EXPORT_FILE_EXTENSION: str = "xlsx"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
