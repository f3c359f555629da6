# Nombre de archivo: test_chat_orchestrator.py
# Ubicación de archivo: tests/test_chat_orchestrator.py
# Descripción: Pruebas unitarias para el orquestador del asistente de reclamos

from __future__ import annotations

import pytest

from core.chatbot import ChatOrchestrator, LocalChatSessionStore, LocalDocumentIndex
from core.chatbot.storage import derive_title
from core.config import ChatSettings
from core.errors import ChatPipelineError, NotFoundError, ValidationError

CHAT_SETTINGS = ChatSettings(
    match_count=2,
    match_threshold=0.5,
    history_turns=2,
    max_tokens=100,
    temperature=0.3,
    default_context="Contexto por defecto",
)


class _FailingIndex:
    async def search(self, embedding, *, match_count, threshold):
        raise RuntimeError("índice caído")


@pytest.fixture
def storage(kv) -> LocalChatSessionStore:
    return LocalChatSessionStore(kv)


@pytest.fixture
def index(kv) -> LocalDocumentIndex:
    return LocalDocumentIndex(kv)


def _orchestrator(storage, index, llm) -> ChatOrchestrator:
    return ChatOrchestrator(storage, index, llm, CHAT_SETTINGS)


def test_derive_title_truncates_long_messages() -> None:
    assert derive_title("Hola") == "Hola"
    title = derive_title("How do I handle shipping damage?")
    assert title == "How do I handle shipping damag..."


def test_derive_title_cuts_the_raw_message() -> None:
    assert derive_title("Línea uno\nlínea  dos con espacios extra") == "Línea uno\nlínea  dos con espac..."


@pytest.mark.asyncio
async def test_new_session_stores_both_messages_in_order(storage, index, fake_llm) -> None:
    orchestrator = _orchestrator(storage, index, fake_llm)
    reply = await orchestrator.send_message("How do I handle shipping damage?", user_id="u1")
    assert reply.response == "Respuesta de prueba"

    sessions = await orchestrator.get_sessions("u1")
    assert [s.id for s in sessions] == [reply.session_id]
    assert sessions[0].title == "How do I handle shipping damag..."

    messages = await orchestrator.get_session_messages(reply.session_id)
    assert [(m.role, m.content) for m in messages] == [
        ("user", "How do I handle shipping damage?"),
        ("assistant", "Respuesta de prueba"),
    ]


@pytest.mark.asyncio
async def test_failure_keeps_user_message(storage, index, fake_llm) -> None:
    fake_llm.fail_complete = RuntimeError("timeout")
    orchestrator = _orchestrator(storage, index, fake_llm)
    with pytest.raises(ChatPipelineError):
        await orchestrator.send_message("¿Cómo cargo un reclamo?", user_id="u1")

    sessions = await orchestrator.get_sessions("u1")
    assert len(sessions) == 1
    messages = await orchestrator.get_session_messages(sessions[0].id)
    assert [(m.role, m.content) for m in messages] == [("user", "¿Cómo cargo un reclamo?")]


@pytest.mark.asyncio
async def test_embedding_failure_is_a_pipeline_error(storage, index, fake_llm) -> None:
    fake_llm.fail_embed = ConnectionError("sin red")
    with pytest.raises(ChatPipelineError):
        await _orchestrator(storage, index, fake_llm).send_message("hola")


@pytest.mark.asyncio
async def test_relevant_documents_feed_the_system_prompt(storage, index, fake_llm) -> None:
    await index.add("Los daños de transporte se reclaman al transportista.", [1.0, 0.0, 0.0], {"source": "manual"})
    await index.add("Texto no relacionado", [0.0, 1.0, 0.0])
    reply = await _orchestrator(storage, index, fake_llm).send_message("daño en transporte")
    assert [doc.metadata for doc in reply.relevant_docs] == [{"source": "manual"}]
    system_prompt = fake_llm.calls[0][0]["content"]
    assert "transportista" in system_prompt
    assert "Contexto por defecto" not in system_prompt


@pytest.mark.asyncio
async def test_retrieval_failure_degrades_to_default_context(storage, fake_llm) -> None:
    reply = await _orchestrator(storage, _FailingIndex(), fake_llm).send_message("hola")
    assert reply.relevant_docs == []
    assert "Contexto por defecto" in fake_llm.calls[0][0]["content"]


@pytest.mark.asyncio
async def test_history_is_limited_to_recent_turns(storage, index, fake_llm) -> None:
    orchestrator = _orchestrator(storage, index, fake_llm)
    first = await orchestrator.send_message("uno")
    await orchestrator.send_message("dos", session_id=first.session_id)
    await orchestrator.send_message("tres", session_id=first.session_id)
    last_call = fake_llm.calls[-1]
    assert last_call[0]["role"] == "system"
    assert [m["content"] for m in last_call[1:]] == ["dos", "Respuesta de prueba", "tres"]


@pytest.mark.asyncio
async def test_validation_and_unknown_session(storage, index, fake_llm) -> None:
    orchestrator = _orchestrator(storage, index, fake_llm)
    with pytest.raises(ValidationError):
        await orchestrator.send_message("   ")
    with pytest.raises(NotFoundError):
        await orchestrator.send_message("hola", session_id="no-existe")


@pytest.mark.asyncio
async def test_delete_session_removes_messages(storage, index, fake_llm) -> None:
    orchestrator = _orchestrator(storage, index, fake_llm)
    reply = await orchestrator.send_message("borrar esto")
    await orchestrator.delete_session(reply.session_id)
    assert await orchestrator.get_session_messages(reply.session_id) == []
    assert reply.session_id not in [s.id for s in await orchestrator.get_sessions()]


@pytest.mark.asyncio
async def test_sessions_are_private_to_their_owner(storage, index, fake_llm) -> None:
    orchestrator = _orchestrator(storage, index, fake_llm)
    reply = await orchestrator.send_message("Consulta de Ana", user_id="ana")

    with pytest.raises(NotFoundError):
        await orchestrator.get_session_messages(reply.session_id, "beto")
    with pytest.raises(NotFoundError):
        await orchestrator.send_message("Me meto en la charla", session_id=reply.session_id, user_id="beto")
    with pytest.raises(NotFoundError):
        await orchestrator.delete_session(reply.session_id, "beto")

    messages = await orchestrator.get_session_messages(reply.session_id, "ana")
    assert [m.content for m in messages] == ["Consulta de Ana", "Respuesta de prueba"]
    assert await orchestrator.get_sessions("beto") == []

    await orchestrator.delete_session(reply.session_id, "ana")
    assert await orchestrator.get_sessions("ana") == []
