# Nombre de archivo: auth.py
# Ubicación de archivo: core/auth.py
# Descripción: Inicio y cierre de sesión contra app.web_users o credencial demo local

"""Servicio de autenticación.

Con base configurada, las credenciales se validan contra ``app.web_users``
(hash bcrypt). Sin base, se acepta un único par demo tomado de la
configuración y la identidad queda guardada en la clave local ``auth_user``
hasta que se cierre la sesión.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import orjson
import psycopg

from core.claims.cache import LocalKeyValueStore
from core.claims.mapping import entity_to_json
from core.claims.models import AuthUser
from core.config import AuthSettings
from core.errors import AuthenticationError, StoreError
from core.password import hash_password, needs_rehash, verify_password

logger = logging.getLogger(__name__)

AUTH_USER_KEY = "auth_user"
DEMO_USER_ID = "demo-user"


class AuthService:
    def __init__(self, settings: AuthSettings, kv: LocalKeyValueStore, dsn: Optional[str] = None) -> None:
        self._settings = settings
        self._kv = kv
        self._dsn = dsn
        if not dsn:
            logger.info("action=auth_mode mode=local reason=database_not_configured")

    @property
    def mode(self) -> str:
        return "remote" if self._dsn else "local"

    async def sign_in(self, email: str, password: str) -> AuthUser:
        normalized = (email or "").strip().lower()
        if not normalized or not password:
            raise AuthenticationError("Email y contraseña son obligatorios")
        if self._dsn:
            user = await asyncio.to_thread(self._sign_in_remote_sync, normalized, password)
        else:
            user = self._sign_in_demo(normalized, password)
            await asyncio.to_thread(self._kv.write, AUTH_USER_KEY, entity_to_json(user))
        logger.info("action=login result=ok mode=%s user_id=%s", self.mode, user.id)
        return user

    async def sign_out(self) -> None:
        await asyncio.to_thread(self._kv.delete, AUTH_USER_KEY)
        logger.info("action=logout mode=%s", self.mode)

    async def current_user(self) -> Optional[AuthUser]:
        """Identidad persistida localmente (solo modo demo)."""
        if self._dsn:
            return None
        try:
            raw = await asyncio.to_thread(self._kv.read, AUTH_USER_KEY)
        except orjson.JSONDecodeError:
            logger.warning("action=auth_current_user error=blob_corrupto")
            return None
        if not raw:
            return None
        return AuthUser(
            id=raw["id"],
            email=raw["email"],
            role=raw.get("role", "user"),
            full_name=raw.get("fullName", ""),
            avatar_url=raw.get("avatarUrl"),
        )

    def _sign_in_demo(self, email: str, password: str) -> AuthUser:
        if email != self._settings.demo_email.lower() or password != self._settings.demo_password:
            logger.warning("action=login result=fail mode=local email=%s", email)
            raise AuthenticationError("Credenciales inválidas")
        return AuthUser(id=DEMO_USER_ID, email=email, role="admin", full_name="Usuario Demo")

    def _sign_in_remote_sync(self, email: str, password: str) -> AuthUser:
        try:
            with psycopg.connect(self._dsn) as conn, conn.cursor() as cur:  # type: ignore[arg-type]
                cur.execute(
                    """
                    SELECT id, email, password_hash, role, full_name, avatar_url
                    FROM app.web_users
                    WHERE lower(email) = %s
                    """,
                    (email,),
                )
                row = cur.fetchone()
                if not row or not verify_password(password, row[2]):
                    logger.warning("action=login result=fail mode=remote email=%s found_user=%s", email, bool(row))
                    raise AuthenticationError("Credenciales inválidas")
                if needs_rehash(row[2]):
                    cur.execute(
                        "UPDATE app.web_users SET password_hash = %s WHERE id = %s",
                        (hash_password(password), row[0]),
                    )
                    conn.commit()
        except psycopg.Error as exc:
            logger.error("action=login error=%s", exc)
            raise StoreError("Servicio de autenticación no disponible", detail=str(exc)) from exc
        return AuthUser(
            id=str(row[0]),
            email=row[1],
            role=row[3] or "user",
            full_name=row[4] or "",
            avatar_url=row[5],
        )


__all__ = ["AUTH_USER_KEY", "AuthService"]
