# Nombre de archivo: db.py
# Ubicación de archivo: api/app/db.py
# Descripción: Verificación de conectividad con PostgreSQL (SQLAlchemy + Psycopg 3)

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.config import Settings
from db.session import get_engine

logger = logging.getLogger(__name__)


def db_health(settings: Settings) -> dict:
    """Realiza un SELECT 1 y devuelve info básica; sin base configurada informa modo local."""
    if not settings.database.configured:
        return {"db": "not_configured", "mode": "local"}
    try:
        with get_engine(settings.database.url).connect() as conn:
            conn.execute(text("SELECT 1"))
            server_version = conn.exec_driver_sql("SHOW server_version").scalar()
    except SQLAlchemyError as exc:
        logger.warning("action=db_health error=%s", exc)
        return {"db": "error", "detail": str(exc)}
    return {"db": "ok", "server_version": server_version}
