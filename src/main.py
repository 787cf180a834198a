import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.features.listing.dependencies import store_registry
from src.features.listing.router import router as listing_router
from src.features.transfer.router import router as transfer_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- 1. Inicio ---
    logger.info("🚀 Iniciando %s (API remota: %s)", settings.APP_NAME, settings.RECORDS_API_URL)

    yield

    # --- 2. Apagado ---
    # Cerramos los stores: cualquier carga aún en vuelo se descarta al terminar
    store_registry.close()
    logger.info("Stores de registros cerrados.")


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(listing_router)
app.include_router(transfer_router)


@app.get("/")
def health_check():
    return {"status": "ok", "service": settings.APP_NAME}
