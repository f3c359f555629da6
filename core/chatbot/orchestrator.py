# Nombre de archivo: orchestrator.py
# Ubicación de archivo: core/chatbot/orchestrator.py
# Descripción: Orquestador del asistente de reclamos (embedding, búsqueda, prompt, completion, persistencia)

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.config import ChatSettings
from core.errors import ChatPipelineError, NotFoundError, ValidationError

from .llm import LLMClient
from .retrieval import DocumentIndex, RelevantDocument
from .storage import ChatMessage, ChatSession, ChatSessionStore, derive_title

SYSTEM_PROMPT = (
    "Sos un asistente especializado en reclamos de clientes para Venture Claims Management. "
    "Respondé usando el contexto provisto. Si no sabés la respuesta, decilo con amabilidad "
    "sin inventar información.\n\nContexto:\n{context}"
)


@dataclass(slots=True)
class ChatReply:
    """Resultado de un intercambio completo."""

    response: str
    session_id: str
    relevant_docs: List[RelevantDocument] = field(default_factory=list)


class ChatOrchestrator:
    """Resuelve la sesión, arma el contexto por similitud y consulta al modelo."""

    def __init__(
        self,
        storage: ChatSessionStore,
        index: DocumentIndex,
        llm: LLMClient,
        settings: ChatSettings,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._storage = storage
        self._index = index
        self._llm = llm
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)

    async def send_message(
        self,
        text: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ChatReply:
        content = (text or "").strip()
        if not content:
            raise ValidationError("El mensaje no puede estar vacío")

        session, history = await self._resolve_session(content, session_id, user_id)
        await self._storage.append_message(session.id, "user", content)
        self._logger.info(
            "action=chat_user_message session_id=%s user_id=%s chars=%s history=%s",
            session.id,
            user_id,
            len(content),
            len(history),
        )

        try:
            embedding = await self._llm.embed(content)
        except ChatPipelineError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("action=chat_embedding session_id=%s error=%s", session.id, exc)
            raise ChatPipelineError("No se pudo procesar el mensaje", detail=str(exc)) from exc

        documents = await self._retrieve(embedding, session.id)
        messages = self._build_messages(content, history, documents)

        try:
            reply = await self._llm.complete(
                messages,
                max_tokens=self._settings.max_tokens,
                temperature=self._settings.temperature,
            )
        except ChatPipelineError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("action=chat_completion session_id=%s error=%s", session.id, exc)
            raise ChatPipelineError("No se pudo generar la respuesta", detail=str(exc)) from exc

        await self._storage.append_message(session.id, "assistant", reply)
        await self._storage.touch_session(session.id)
        self._logger.info(
            "action=chat_assistant_reply session_id=%s docs=%s chars=%s",
            session.id,
            len(documents),
            len(reply),
        )
        return ChatReply(response=reply, session_id=session.id, relevant_docs=documents)

    async def _resolve_session(
        self, content: str, session_id: Optional[str], user_id: Optional[str]
    ) -> tuple[ChatSession, List[ChatMessage]]:
        if session_id:
            session = await self._owned_session(session_id, user_id)
            history = await self._storage.get_session_messages(session_id)
            return session, history
        session = await self._storage.create_session(derive_title(content), user_id)
        self._logger.info("action=chat_session_create session_id=%s user_id=%s", session.id, user_id)
        return session, []

    async def _retrieve(self, embedding: List[float], session_id: str) -> List[RelevantDocument]:
        try:
            return await self._index.search(
                embedding,
                match_count=self._settings.match_count,
                threshold=self._settings.match_threshold,
            )
        except Exception as exc:  # noqa: BLE001
            # Sin documentos se responde con el contexto por defecto
            self._logger.warning("action=chat_retrieval degrade=default_context session_id=%s error=%s", session_id, exc)
            return []

    def _build_messages(
        self,
        content: str,
        history: List[ChatMessage],
        documents: List[RelevantDocument],
    ) -> List[Dict[str, str]]:
        if documents:
            context = "\n\n".join(doc.content for doc in documents)
        else:
            context = self._settings.default_context
        messages = [{"role": "system", "content": SYSTEM_PROMPT.format(context=context)}]
        turns = self._settings.history_turns
        recent = history[-turns:] if turns > 0 else []
        messages.extend({"role": message.role, "content": message.content} for message in recent)
        messages.append({"role": "user", "content": content})
        return messages

    async def get_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        return await self._storage.get_sessions(user_id)

    async def _owned_session(self, session_id: str, user_id: Optional[str]) -> ChatSession:
        """Sesión existente del usuario; la de otro usuario se informa como inexistente."""
        session = await self._storage.get_session(session_id)
        if session is None or (user_id is not None and session.user_id != user_id):
            if session is not None:
                self._logger.warning(
                    "action=chat_session_denied session_id=%s user_id=%s", session_id, user_id
                )
            raise NotFoundError(f"Sesión {session_id} no encontrada")
        return session

    async def get_session_messages(self, session_id: str, user_id: Optional[str] = None) -> List[ChatMessage]:
        if user_id is not None:
            await self._owned_session(session_id, user_id)
        return await self._storage.get_session_messages(session_id)

    async def delete_session(self, session_id: str, user_id: Optional[str] = None) -> None:
        if user_id is not None:
            await self._owned_session(session_id, user_id)
        await self._storage.delete_session(session_id)
        self._logger.info("action=chat_session_delete session_id=%s", session_id)


__all__ = ["ChatOrchestrator", "ChatReply", "SYSTEM_PROMPT"]
