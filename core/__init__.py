# Nombre de archivo: __init__.py
# Ubicación de archivo: core/__init__.py
# Descripción: Inicializa el paquete central de la gestión de reclamos

"""Dominio y servicios compartidos por la API de reclamos."""

from .config import Settings, get_settings
from .errors import ClaimsAppError
from .secrets import get_secret

__all__ = ["ClaimsAppError", "Settings", "get_secret", "get_settings"]
