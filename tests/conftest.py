# Nombre de archivo: conftest.py
# Ubicación de archivo: tests/conftest.py
# Descripción: Configuraciones comunes para Pytest (PYTHONPATH, settings locales y dobles de prueba)

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:  # pragma: no cover - inicialización
    sys.path.insert(0, str(ROOT_DIR))

from core.claims.cache import LocalFallbackCache, LocalKeyValueStore  # noqa: E402
from core.config import Settings, get_settings  # noqa: E402


class FakeLLM:
    """Modelo de lenguaje determinístico para pruebas."""

    def __init__(self, reply: str = "Respuesta de prueba", embedding: List[float] | None = None) -> None:
        self.reply = reply
        self.embedding = embedding or [1.0, 0.0, 0.0]
        self.calls: List[List[Dict[str, str]]] = []
        self.fail_embed: Exception | None = None
        self.fail_complete: Exception | None = None

    async def embed(self, text: str) -> List[float]:
        if self.fail_embed is not None:
            raise self.fail_embed
        return list(self.embedding)

    async def complete(self, messages, *, max_tokens: int, temperature: float) -> str:
        self.calls.append(messages)
        if self.fail_complete is not None:
            raise self.fail_complete
        return self.reply


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    """Settings en modo local apuntando a un directorio temporal."""
    for name in (
        "DATABASE_URL",
        "DATABASE_DSN",
        "OPENAI_API_KEY",
        "CLAIM_STATUS_TRANSITIONS",
        "DEMO_USER_EMAIL",
        "DEMO_USER_PASSWORD",
        "UPLOAD_MAX_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CLAIMS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SECRETS_DIR", str(tmp_path / "secrets"))
    monkeypatch.setenv("LOG_TO_FILE", "false")
    get_settings.cache_clear()
    yield Settings()
    get_settings.cache_clear()


@pytest.fixture
def kv(tmp_path) -> LocalKeyValueStore:
    return LocalKeyValueStore(tmp_path / "local")


@pytest.fixture
def cache(kv) -> LocalFallbackCache:
    return LocalFallbackCache(kv)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()
