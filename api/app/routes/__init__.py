# Nombre de archivo: __init__.py
# Ubicación de archivo: api/app/routes/__init__.py
# Descripción: Init del paquete routes

"""Routers de la API agrupados en el orden en que se registran."""

from .alerts import router as alerts_router
from .auth import router as auth_router
from .chat import router as chat_router
from .claims import router as claims_router
from .email_webhook import router as email_webhook_router
from .health import router as health_router
from .imports import router as imports_router

ROUTERS = (
    health_router,
    auth_router,
    claims_router,
    chat_router,
    alerts_router,
    imports_router,
    email_webhook_router,
)

__all__ = ["ROUTERS"]
