# Nombre de archivo: password.py
# Ubicación de archivo: core/password.py
# Descripción: Hash y verificación bcrypt para las credenciales de app.web_users

from __future__ import annotations

import logging

import bcrypt

LOGGER = logging.getLogger(__name__)

# bcrypt ignora todo lo que supere 72 bytes
_MAX_BYTES = 72
DEFAULT_ROUNDS = 12


def _encode(password: str) -> bytes:
    raw = password.encode("utf-8")
    if len(raw) > _MAX_BYTES:
        LOGGER.warning("action=password_truncate max_bytes=%s", _MAX_BYTES)
        raw = raw[:_MAX_BYTES]
    return raw


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Compara contra el hash guardado; un hash mal formado cuenta como no coincidente."""
    try:
        return bool(bcrypt.checkpw(_encode(password), hashed.encode("utf-8")))
    except ValueError as exc:
        LOGGER.warning("action=password_verify error=hash_invalido detail=%s", exc)
        return False


def needs_rehash(hashed: str, *, rounds: int = DEFAULT_ROUNDS) -> bool:
    """Indica si el hash fue generado con un costo menor al vigente."""
    parts = hashed.split("$")
    try:
        return int(parts[2]) < rounds
    except (IndexError, ValueError):
        return True


__all__ = ["DEFAULT_ROUNDS", "hash_password", "needs_rehash", "verify_password"]
