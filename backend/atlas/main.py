"""
Point d'entrée principal de l'API Onsite Atlas.
Démarrage : uvicorn atlas.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import atlas.models  # noqa: F401 (enregistre tous les modèles dans Base.metadata avant les routers)
from atlas.cache import TTLCache
from atlas.config import settings
from atlas.routers import abstracts, events, resources
from atlas.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : démarre et arrête le scheduler APScheduler."""
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Onsite Atlas API",
    description="API de gestion d'événements : inscriptions, distribution des ressources, certificats, abstracts",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Un seul cache par processus, injecté dans les routers via get_abstract_cache
app.state.abstract_cache = TTLCache(
    ttl_seconds=settings.ABSTRACT_CACHE_TTL_SECONDS,
    max_entries=settings.ABSTRACT_CACHE_MAX_ENTRIES,
)

# CORS : autorise tous les ports localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


app.include_router(events.router)
app.include_router(resources.router)
app.include_router(abstracts.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour que la réponse 500
    passe par CORSMiddleware (headers CORS présents côté navigateur).
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "Onsite Atlas API", "version": "0.1.0"}
