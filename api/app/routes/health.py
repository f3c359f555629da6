# Nombre de archivo: health.py
# Ubicación de archivo: api/app/routes/health.py
# Descripción: Endpoints de health y verificación de DB
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.app.db import db_health
from api.app.services import AppServices, get_services

router = APIRouter(tags=["health"])


@router.get("/health")
def health(services: AppServices = Depends(get_services)):
    return {
        "status": "ok",
        "service": "api",
        "mode": services.claims.mode,
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db-check")
def db_check(services: AppServices = Depends(get_services)):
    return db_health(services.settings)
