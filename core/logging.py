# Nombre de archivo: logging.py
# Ubicación de archivo: core/logging.py
# Descripción: Logging centralizado (stdout + archivo rotativo opcional) con request_id por solicitud

from __future__ import annotations

import logging
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path

_FORMAT = "%(asctime)s service=%(name)s level=%(levelname)s request_id=%(request_id)s msg=%(message)s"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Inyecta el request_id activo en cada registro."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging(
    service: str,
    level: str | int = "INFO",
    enable_file: bool = False,
    logs_dir: str | Path | None = None,
    filename: str | None = None,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> logging.Logger:
    """Configura logging estándar para un servicio.

    Args:
        service: nombre lógico del servicio (api, worker, etc.)
        level: nivel (str o int) por defecto INFO
        enable_file: agrega un RotatingFileHandler además de stdout
        logs_dir: carpeta destino (default: ./Logs)
        filename: nombre archivo (default: f"{service}.log")
        max_bytes: tamaño máximo antes de rotar
        backup_count: cantidad de backups
    """
    lvl = logging.getLevelName(level) if isinstance(level, str) else level
    logging.basicConfig(level=lvl, format=_FORMAT)
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    logger = logging.getLogger(service)
    # Evitar duplicados al llamar varias veces (p. ej. un create_app por test)
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return logger
    if enable_file:
        try:
            base_dir = Path(logs_dir) if logs_dir else (Path.cwd() / "Logs")
            base_dir.mkdir(parents=True, exist_ok=True)
            file_name = filename or f"{service}.log"
            fh = RotatingFileHandler(base_dir / file_name, maxBytes=max_bytes, backupCount=backup_count)
            fh.setFormatter(logging.Formatter(_FORMAT))
            fh.addFilter(RequestIdFilter())
            fh.setLevel(lvl)
            logger.addHandler(fh)
            logger.debug("action=logging file_handler=enabled path=%s", base_dir / file_name)
        except Exception as exc:  # noqa: BLE001
            logger.error("action=logging file_handler=failed error=%s", exc)
    return logger


__all__ = ["request_id_var", "setup_logging", "RequestIdFilter"]
