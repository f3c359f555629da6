# Nombre de archivo: test_auth.py
# Ubicación de archivo: tests/test_auth.py
# Descripción: Pruebas de autenticación (modo demo, modo base simulada y hash bcrypt)

from __future__ import annotations

from typing import Any, List, Optional

import psycopg
import pytest

from core import auth as auth_module
from core.auth import AUTH_USER_KEY, AuthService
from core.config import AuthSettings
from core.errors import AuthenticationError, StoreError
from core.password import hash_password, needs_rehash, verify_password

AUTH = AuthSettings(demo_email="demo@venture.com", demo_password="demo123", session_secret="test")


class _Cur:
    def __init__(self, row: Optional[tuple], executed: List[str]):
        self._row = row
        self._executed = executed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql: str, params: tuple[Any, ...] | None = None):
        self._executed.append(" ".join(sql.split()))

    def fetchone(self):
        return self._row


class _Conn:
    def __init__(self, row: Optional[tuple], executed: List[str]):
        self._row = row
        self._executed = executed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def cursor(self):
        return _Cur(self._row, self._executed)

    def commit(self):
        self._executed.append("COMMIT")


def test_password_helpers() -> None:
    hashed = hash_password("secreto", rounds=4)
    assert verify_password("secreto", hashed)
    assert not verify_password("otro", hashed)
    assert not verify_password("secreto", "no-es-un-hash")
    assert needs_rehash(hashed)
    assert not needs_rehash(hashed, rounds=4)


@pytest.mark.asyncio
async def test_demo_sign_in_persists_until_sign_out(kv) -> None:
    service = AuthService(AUTH, kv)
    assert service.mode == "local"
    user = await service.sign_in(" Demo@Venture.com ", "demo123")
    assert user.id == "demo-user"
    assert kv.exists(AUTH_USER_KEY)
    current = await service.current_user()
    assert current is not None and current.email == "demo@venture.com"
    await service.sign_out()
    assert await service.current_user() is None


@pytest.mark.asyncio
async def test_demo_rejects_bad_credentials(kv) -> None:
    service = AuthService(AUTH, kv)
    with pytest.raises(AuthenticationError):
        await service.sign_in("demo@venture.com", "mal")
    with pytest.raises(AuthenticationError):
        await service.sign_in("", "")
    assert not kv.exists(AUTH_USER_KEY)


@pytest.mark.asyncio
async def test_remote_sign_in_rehashes_weak_hash(kv, monkeypatch) -> None:
    executed: List[str] = []
    row = (7, "ana@venture.com", hash_password("clave", rounds=4), "admin", "Ana", None)
    monkeypatch.setattr(auth_module.psycopg, "connect", lambda dsn: _Conn(row, executed))
    service = AuthService(AUTH, kv, dsn="postgresql://x")
    user = await service.sign_in("ana@venture.com", "clave")
    assert (user.id, user.role, user.full_name) == ("7", "admin", "Ana")
    assert any(sql.startswith("UPDATE app.web_users SET password_hash") for sql in executed)
    assert executed[-1] == "COMMIT"
    assert await service.current_user() is None


@pytest.mark.asyncio
async def test_remote_sign_in_failures(kv, monkeypatch) -> None:
    monkeypatch.setattr(auth_module.psycopg, "connect", lambda dsn: _Conn(None, []))
    service = AuthService(AUTH, kv, dsn="postgresql://x")
    with pytest.raises(AuthenticationError):
        await service.sign_in("nadie@venture.com", "clave")

    def _broken(dsn):
        raise psycopg.OperationalError("sin base")

    monkeypatch.setattr(auth_module.psycopg, "connect", _broken)
    with pytest.raises(StoreError):
        await service.sign_in("ana@venture.com", "clave")
