# Nombre de archivo: __init__.py
# Ubicación de archivo: core/chatbot/__init__.py
# Descripción: Paquete del asistente de reclamos con recuperación de contexto

"""Componentes de orquestación y persistencia del asistente de reclamos."""

from __future__ import annotations

from core.claims.cache import LocalKeyValueStore
from core.config import Settings

from .llm import LLMClient, OpenAIClient
from .orchestrator import ChatOrchestrator, ChatReply
from .retrieval import DatabaseDocumentIndex, DocumentIndex, LocalDocumentIndex, RelevantDocument
from .storage import (
    ChatMessage,
    ChatSession,
    ChatSessionStore,
    DatabaseChatSessionStore,
    LocalChatSessionStore,
)


def build_chat_orchestrator(
    settings: Settings,
    kv: LocalKeyValueStore,
    llm: LLMClient | None = None,
) -> ChatOrchestrator:
    """Arma el orquestador con almacenamiento remoto o local según la configuración."""
    if settings.database.dsn:
        storage: ChatSessionStore = DatabaseChatSessionStore(settings.database.dsn, fallback=LocalChatSessionStore(kv))
        index: DocumentIndex = DatabaseDocumentIndex(settings.database.dsn)
    else:
        storage = LocalChatSessionStore(kv)
        index = LocalDocumentIndex(kv)
    return ChatOrchestrator(storage, index, llm or OpenAIClient(settings.llm), settings.chat)


__all__ = [
    "ChatMessage",
    "ChatOrchestrator",
    "ChatReply",
    "ChatSession",
    "ChatSessionStore",
    "DatabaseChatSessionStore",
    "LocalChatSessionStore",
    "LocalDocumentIndex",
    "OpenAIClient",
    "RelevantDocument",
    "build_chat_orchestrator",
]
