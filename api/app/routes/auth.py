# Nombre de archivo: auth.py
# Ubicación de archivo: api/app/routes/auth.py
# Descripción: Endpoints de inicio, cierre y consulta de sesión
"""Login con cookie de sesión firmada (SessionMiddleware)."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from api.app.schemas import LoginRequest
from api.app.services import SESSION_USER_KEY, AppServices, get_services, require_user
from core.claims.mapping import entity_to_json

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(payload: LoginRequest, request: Request, services: AppServices = Depends(get_services)):
    user = await services.auth.sign_in(payload.email, payload.password)
    data = entity_to_json(user)
    request.session[SESSION_USER_KEY] = data
    return {"success": True, "user": data}


@router.post("/logout")
async def logout(request: Request, services: AppServices = Depends(get_services)):
    user = request.session.pop(SESSION_USER_KEY, None)
    if user:
        services.release(user["id"])
    await services.auth.sign_out()
    request.session.clear()
    return {"success": True}


@router.get("/me")
async def me(user: Dict[str, Any] = Depends(require_user)):
    return {"user": user}
