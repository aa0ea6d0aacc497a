# Fichier: drillcraft/api/v2/api.py
from fastapi import APIRouter
from .endpoints import (
    generation_router,
    session_router,
)

api_router = APIRouter()

api_router.include_router(generation_router.router, tags=["Generation"])
api_router.include_router(session_router.router, tags=["Sessions"])
