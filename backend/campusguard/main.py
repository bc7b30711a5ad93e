"""
Point d'entrée principal de l'API CampusGuard (monitoring IoT de l'établissement).
Démarrage : uvicorn campusguard.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Enregistre tous les modèles dans Base.metadata avant les routers
import campusguard.models  # noqa: F401
from campusguard.config import settings
from campusguard.routers import devices, iot, monitoring, monitoring_settings, reports, rooms, simulator
from campusguard.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : démarre et arrête le balayage des alertes."""
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="CampusGuard API",
    description="Monitoring IoT : contrôle d'accès RFID, télémétrie des salles, exports",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS : tous les ports localhost en développement (à restreindre en production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-User-Id"],
)


app.include_router(iot.router)
app.include_router(monitoring_settings.router)
app.include_router(devices.router)
app.include_router(rooms.router)
app.include_router(monitoring.router)
app.include_router(reports.router)
app.include_router(simulator.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Les corps et paramètres invalides répondent 400 avec le détail par champ."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Données invalides.", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour que la réponse 500 passe
    par CORSMiddleware (sinon le navigateur reçoit une erreur sans en-têtes CORS).
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Une erreur interne est survenue."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "CampusGuard API", "version": "0.1.0"}
