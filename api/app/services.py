# Nombre de archivo: services.py
# Ubicación de archivo: api/app/services.py
# Descripción: Contenedor de servicios de la API y dependencias de FastAPI

"""Servicios compartidos por las rutas.

``build_services`` decide una sola vez, a partir de la configuración, si cada
almacén trabaja contra PostgreSQL o contra los archivos locales. Las rutas
obtienen el contenedor con :func:`get_services` y el usuario autenticado con
:func:`require_user`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from core.alerts import AlertStore, build_alert_store
from core.auth import AuthService
from core.chatbot import ChatOrchestrator, build_chat_orchestrator
from core.chatbot.llm import LLMClient
from core.claims import ClaimsContext, ClaimStore, build_claim_store
from core.claims.cache import LocalFallbackCache, LocalKeyValueStore
from core.claims.mapping import entity_to_json
from core.config import Settings
from core.errors import AuthenticationError
from core.services.email_intake import EmailIntakeService

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user"


@dataclass
class AppServices:
    settings: Settings
    kv: LocalKeyValueStore
    claims: ClaimStore
    chat: ChatOrchestrator
    auth: AuthService
    alerts: AlertStore
    intake: EmailIntakeService
    contexts: Dict[str, ClaimsContext] = field(default_factory=dict)

    async def context_for(self, user_id: str) -> ClaimsContext:
        """Contexto en memoria del usuario; se crea y carga en el primer uso."""
        context = self.contexts.get(user_id)
        if context is None:
            context = ClaimsContext(self.claims)
            self.contexts[user_id] = context
            await context.activate(user_id)
        else:
            await context.refresh()
        return context

    def release(self, user_id: str) -> None:
        context = self.contexts.pop(user_id, None)
        if context is not None:
            context.deactivate()


def build_services(
    settings: Settings,
    *,
    llm: Optional[LLMClient] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> AppServices:
    kv = LocalKeyValueStore(settings.fallback.data_dir)
    if session_factory is None and settings.database.configured:
        from db.session import get_sessionmaker

        session_factory = get_sessionmaker(settings.database.url)
    claims = build_claim_store(settings, session_factory=session_factory, kv=kv)
    alerts = build_alert_store(kv, LocalFallbackCache(kv), session_factory)
    services = AppServices(
        settings=settings,
        kv=kv,
        claims=claims,
        chat=build_chat_orchestrator(settings, kv, llm),
        auth=AuthService(settings.auth, kv, settings.database.dsn),
        alerts=alerts,
        intake=EmailIntakeService(claims, settings.intake, alerts),
    )
    logger.info("action=services_ready claims_mode=%s auth_mode=%s", claims.mode, services.auth.mode)
    return services


def get_services(request: Request) -> AppServices:
    return request.app.state.services


async def current_user(request: Request, services: AppServices = Depends(get_services)) -> Optional[Dict[str, Any]]:
    """Usuario de la cookie de sesión; en modo demo también la identidad persistida."""
    user = request.session.get(SESSION_USER_KEY)
    if user:
        return user
    stored = await services.auth.current_user()
    if stored is not None:
        user = entity_to_json(stored)
        request.session[SESSION_USER_KEY] = user
        return user
    return None


async def require_user(user: Optional[Dict[str, Any]] = Depends(current_user)) -> Dict[str, Any]:
    if not user:
        raise AuthenticationError("Iniciá sesión para continuar", code="NOT_AUTHENTICATED")
    return user


__all__ = [
    "AppServices",
    "SESSION_USER_KEY",
    "build_services",
    "current_user",
    "get_services",
    "require_user",
]
