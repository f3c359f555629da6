# Nombre de archivo: alerts.py
# Ubicación de archivo: api/app/routes/alerts.py
# Descripción: Endpoints de alertas del usuario (listado y marcado)

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.app.schemas import AlertCreate
from api.app.services import AppServices, get_services, require_user
from core.claims.mapping import entity_to_json

router = APIRouter(prefix="/api/alerts", tags=["alerts"], dependencies=[Depends(require_user)])


@router.get("")
async def list_alerts(
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    alerts = await services.alerts.fetch_alerts(user["id"])
    return [entity_to_json(alert) for alert in alerts]


@router.post("", status_code=201)
async def create_alert(payload: AlertCreate, services: AppServices = Depends(get_services)):
    alert = await services.alerts.create_alert(
        payload.message,
        payload.type,
        user_id=payload.user_id,
        claim_id=payload.claim_id,
    )
    return entity_to_json(alert)


@router.post("/read-all")
async def mark_all_read(
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    await services.alerts.mark_all_as_read(user["id"])
    return {"success": True}


@router.post("/{alert_id}/read")
async def mark_read(alert_id: str, services: AppServices = Depends(get_services)):
    await services.alerts.mark_as_read(alert_id)
    return {"success": True}


@router.post("/{alert_id}/unread")
async def mark_unread(alert_id: str, services: AppServices = Depends(get_services)):
    await services.alerts.mark_as_unread(alert_id)
    return {"success": True}
