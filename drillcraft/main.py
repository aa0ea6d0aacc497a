import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Imports de l'application
from drillcraft.core.config import settings
from drillcraft.api.v2.api import api_router
from drillcraft.db import session as db_session
from drillcraft.db.base import Base

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="Drillcraft API V2",
    openapi_url="/api/v2/openapi.json"
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    origins = sorted(
        {origin for origin in map(_sanitize_origin, settings.BACKEND_CORS_ORIGINS) if origin}
    )
    logger.info("CORS origins configurés: %s", origins)
    return origins


# --- Configuration des Middlewares ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=_build_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type", "X-User-Id"],
)

app.include_router(api_router, prefix="/api/v2")


# --- Événement de Démarrage ---
@app.on_event("startup")
def startup():
    logger.info("Vérification et création des tables de la base de données...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("✅ Les tables de la base de données sont prêtes.")


# --- Route Racine ---
@app.get("/")
def read_root():
    return {"message": "Welcome to Drillcraft API V2!"}
