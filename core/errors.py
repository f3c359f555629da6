# Nombre de archivo: errors.py
# Ubicación de archivo: core/errors.py
# Descripción: Jerarquía de errores controlados de la aplicación de reclamos

from __future__ import annotations


class ClaimsAppError(Exception):
    """Error controlado con código estable y mensaje apto para el usuario."""

    code = "APP_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code
        self.user_message = message
        self.detail = detail or message


class ValidationError(ClaimsAppError):
    """Datos inválidos detectados antes de cualquier llamada remota."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(ClaimsAppError):
    code = "NOT_FOUND"
    status_code = 404


class StoreError(ClaimsAppError):
    """Fallo de escritura normalizado (el origen remoto queda solo en `detail`)."""

    code = "STORE_ERROR"
    status_code = 502


class ChatPipelineError(ClaimsAppError):
    code = "CHAT_PIPELINE_ERROR"
    status_code = 502


class AuthenticationError(ClaimsAppError):
    code = "AUTH_FAILED"
    status_code = 401


__all__ = [
    "AuthenticationError",
    "ChatPipelineError",
    "ClaimsAppError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
