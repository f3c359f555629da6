# Nombre de archivo: main.py
# Ubicación de archivo: api/app/main.py
# Descripción: Aplicación FastAPI principal (servicios, middlewares, errores y rutas)

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from api.app.routes import ROUTERS
from api.app.services import AppServices, build_services
from core.chatbot.llm import LLMClient
from core.config import Settings, get_settings
from core.errors import ClaimsAppError
from core.logging import setup_logging
from core.middlewares import RequestIDMiddleware

logger = logging.getLogger("api")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClaimsAppError)
    async def claims_error_handler(request: Request, exc: ClaimsAppError) -> JSONResponse:
        logger.warning(
            "action=request_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.detail
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.user_message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Datos de entrada inválidos",
                "code": "VALIDATION_ERROR",
                "fields": [".".join(str(part) for part in err["loc"]) for err in exc.errors()],
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    llm: Optional[LLMClient] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    services: Optional[AppServices] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging("api", settings.log_level, enable_file=settings.log_to_file)
    app = FastAPI(title="Claims Management API", version="0.1.0")
    app.state.settings = settings
    app.state.services = services or build_services(settings, llm=llm, session_factory=session_factory)

    app.add_middleware(SessionMiddleware, secret_key=settings.auth.session_secret, same_site="lax")
    app.add_middleware(RequestIDMiddleware)
    _register_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    if app.state.services.claims.mode == "remote" and settings.storage.public_base_url.startswith("/"):
        settings.storage.uploads_dir.mkdir(parents=True, exist_ok=True)
        app.mount(
            settings.storage.public_base_url,
            StaticFiles(directory=settings.storage.uploads_dir),
            name="uploads",
        )
    return app
