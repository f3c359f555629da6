# Nombre de archivo: test_chat_storage.py
# Ubicación de archivo: tests/test_chat_storage.py
# Descripción: Pruebas del almacenamiento de chat en PostgreSQL sin base disponible (lecturas locales, escrituras con StoreError)

from __future__ import annotations

import psycopg
import pytest

from core.chatbot import ChatOrchestrator, DatabaseChatSessionStore, LocalChatSessionStore, LocalDocumentIndex
from core.config import ChatSettings
from core.errors import StoreError


def _refuse(*args, **kwargs):
    raise psycopg.OperationalError("connection failed: Connection refused")


@pytest.fixture
def local(kv) -> LocalChatSessionStore:
    return LocalChatSessionStore(kv)


@pytest.fixture
def offline(monkeypatch, local) -> DatabaseChatSessionStore:
    monkeypatch.setattr(psycopg, "connect", _refuse)
    return DatabaseChatSessionStore("postgresql://u:p@127.0.0.1:1/claims", fallback=local)


@pytest.mark.asyncio
async def test_reads_fall_back_to_local_sessions(offline, local) -> None:
    session = await local.create_session("Consulta guardada", "u1")
    await local.append_message(session.id, "user", "Hola")

    sessions = await offline.get_sessions("u1")
    assert [s.id for s in sessions] == [session.id]
    assert (await offline.get_session(session.id)).title == "Consulta guardada"
    assert [m.content for m in await offline.get_session_messages(session.id)] == ["Hola"]


@pytest.mark.asyncio
async def test_reads_without_fallback_are_empty(monkeypatch) -> None:
    monkeypatch.setattr(psycopg, "connect", _refuse)
    store = DatabaseChatSessionStore("postgresql://u:p@127.0.0.1:1/claims")
    assert await store.get_sessions("u1") == []
    assert await store.get_session("s1") is None
    assert await store.get_session_messages("s1") == []


@pytest.mark.asyncio
async def test_writes_surface_store_errors(offline) -> None:
    with pytest.raises(StoreError) as excinfo:
        await offline.create_session("Nueva", "u1")
    assert "Connection refused" in excinfo.value.detail
    with pytest.raises(StoreError):
        await offline.append_message("s1", "user", "Hola")
    with pytest.raises(StoreError):
        await offline.touch_session("s1")
    with pytest.raises(StoreError):
        await offline.delete_session("s1")


@pytest.mark.asyncio
async def test_send_message_reports_store_error(offline, kv, fake_llm) -> None:
    settings = ChatSettings(
        match_count=5,
        match_threshold=0.5,
        history_turns=5,
        max_tokens=500,
        temperature=0.3,
        default_context="Contexto por defecto",
    )
    orchestrator = ChatOrchestrator(offline, LocalDocumentIndex(kv), fake_llm, settings)
    with pytest.raises(StoreError):
        await orchestrator.send_message("Hola", user_id="u1")
    assert fake_llm.calls == []
