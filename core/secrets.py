# Nombre de archivo: secrets.py
# Ubicación de archivo: core/secrets.py
# Descripción: Lectura de credenciales (API keys, contraseñas) desde entorno o Docker secrets

"""Resolución de credenciales para la API de reclamos.

Las claves sensibles (``OPENAI_API_KEY``, ``DEMO_USER_PASSWORD``,
``WEB_SECRET_KEY``) pueden venir como variable de entorno o como archivo
montado por Docker Secrets. El directorio de secretos se puede mover con
``SECRETS_DIR`` para las pruebas.
"""

from __future__ import annotations

import os
from pathlib import Path


def _secrets_dir() -> Path:
    return Path(os.getenv("SECRETS_DIR", "/run/secrets"))


def get_secret(name: str, default: str | None = None) -> str | None:
    """Devuelve el secreto `name` o `default` si no está disponible.

    Parameters
    ----------
    name:
        Nombre de la variable de entorno. El archivo equivalente se busca en
        minúsculas dentro del directorio de secretos.
    default:
        Valor de reemplazo cuando no hay variable ni archivo.
    """

    value = os.getenv(name)
    if value:
        return value

    secret_file = _secrets_dir() / name.lower()
    try:
        content = secret_file.read_text(encoding="utf-8").strip()
    except (FileNotFoundError, IsADirectoryError, PermissionError):
        return default
    return content or default


__all__ = ["get_secret"]
