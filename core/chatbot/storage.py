# Nombre de archivo: storage.py
# Ubicación de archivo: core/chatbot/storage.py
# Descripción: Persistencia de sesiones y mensajes del asistente de reclamos

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

import orjson
import psycopg

from core.claims.cache import LocalKeyValueStore
from core.claims.mapping import parse_datetime
from core.claims.models import ChatRole, new_id, utcnow
from core.errors import StoreError

logger = logging.getLogger(__name__)

SESSIONS_KEY = "chat_sessions"
TITLE_LENGTH = 30


def derive_title(text: str) -> str:
    """Título de sesión: primeros 30 caracteres del mensaje, con `...` si es más largo."""
    text = text or ""
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text


@dataclass(slots=True)
class ChatMessage:
    content: str
    role: ChatRole
    timestamp: datetime
    id: Optional[str] = None


@dataclass(slots=True)
class ChatSession:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    user_id: Optional[str] = None
    # Vacío en los listados; los mensajes se piden aparte
    messages: List[ChatMessage] = field(default_factory=list)


class ChatSessionStore(Protocol):
    """Contrato para la capa de persistencia del chat."""

    async def create_session(self, title: str, user_id: Optional[str] = None) -> ChatSession:
        """Crea una sesión y la devuelve con su id."""

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Devuelve la sesión (sin mensajes) o ``None``."""

    async def append_message(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        """Almacena un mensaje asociado a la sesión."""

    async def touch_session(self, session_id: str) -> None:
        """Actualiza la fecha de última modificación."""

    async def get_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        """Sesiones ordenadas por última modificación descendente."""

    async def get_session_messages(self, session_id: str) -> List[ChatMessage]:
        """Mensajes en orden cronológico."""

    async def delete_session(self, session_id: str) -> None:
        """Elimina primero los mensajes y luego la sesión."""


@dataclass
class DatabaseChatSessionStore(ChatSessionStore):
    """Persistencia basada en PostgreSQL (sincrónica encapsulada en hilos).

    Las lecturas que fallan se responden con ``fallback`` (los archivos locales)
    o con un resultado vacío; las escrituras fallidas se informan como
    :class:`StoreError`.
    """

    dsn: str
    fallback: Optional[LocalChatSessionStore] = None

    async def _write(self, action: str, func_sync: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func_sync, *args)
        except psycopg.Error as exc:
            logger.error("action=%s error=%s", action, exc)
            raise StoreError("No se pudo guardar la conversación", detail=str(exc)) from exc

    async def create_session(self, title: str, user_id: Optional[str] = None) -> ChatSession:
        return await self._write("chat_session_create", self._create_session_sync, title, user_id)

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        try:
            return await asyncio.to_thread(self._get_session_sync, session_id)
        except psycopg.Error as exc:
            logger.warning("action=chat_get_session fallback=local session_id=%s error=%s", session_id, exc)
            return await self.fallback.get_session(session_id) if self.fallback else None

    async def append_message(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        return await self._write("chat_append_message", self._append_message_sync, session_id, role, content)

    async def touch_session(self, session_id: str) -> None:
        await self._write("chat_touch_session", self._touch_session_sync, session_id)

    async def get_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        try:
            return await asyncio.to_thread(self._get_sessions_sync, user_id)
        except psycopg.Error as exc:
            logger.warning("action=chat_get_sessions fallback=local user_id=%s error=%s", user_id, exc)
            return await self.fallback.get_sessions(user_id) if self.fallback else []

    async def get_session_messages(self, session_id: str) -> List[ChatMessage]:
        try:
            return await asyncio.to_thread(self._get_session_messages_sync, session_id)
        except psycopg.Error as exc:
            logger.warning("action=chat_get_messages fallback=local session_id=%s error=%s", session_id, exc)
            return await self.fallback.get_session_messages(session_id) if self.fallback else []

    async def delete_session(self, session_id: str) -> None:
        await self._write("chat_session_delete", self._delete_session_sync, session_id)

    # --- Métodos privados sincrónicos -------------------------------------------------

    def _create_session_sync(self, title: str, user_id: Optional[str]) -> ChatSession:
        session_id = new_id()
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute(
                """
                INSERT INTO app.chat_sessions (id, user_id, title, created_at, updated_at)
                VALUES (%s, %s, %s, NOW(), NOW())
                RETURNING created_at, updated_at
                """,
                (session_id, user_id, title),
            )
            created_at, updated_at = cur.fetchone()
            conn.commit()
        return ChatSession(
            id=session_id,
            title=title,
            created_at=parse_datetime(created_at),
            updated_at=parse_datetime(updated_at),
            user_id=user_id,
        )

    def _get_session_sync(self, session_id: str) -> Optional[ChatSession]:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute(
                "SELECT id, title, created_at, updated_at, user_id FROM app.chat_sessions WHERE id = %s",
                (session_id,),
            )
            row = cur.fetchone()
        return _session_from_row(row) if row else None

    def _append_message_sync(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute(
                """
                INSERT INTO app.chat_messages (session_id, role, content, created_at)
                VALUES (%s, %s, %s, NOW())
                RETURNING id, created_at
                """,
                (session_id, role, content),
            )
            message_id, created_at = cur.fetchone()
            conn.commit()
        return ChatMessage(content=content, role=role, timestamp=parse_datetime(created_at), id=str(message_id))

    def _touch_session_sync(self, session_id: str) -> None:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute("UPDATE app.chat_sessions SET updated_at = NOW() WHERE id = %s", (session_id,))
            conn.commit()

    def _get_sessions_sync(self, user_id: Optional[str]) -> List[ChatSession]:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            if user_id is None:
                cur.execute(
                    """
                    SELECT id, title, created_at, updated_at, user_id
                    FROM app.chat_sessions
                    ORDER BY updated_at DESC
                    """
                )
            else:
                cur.execute(
                    """
                    SELECT id, title, created_at, updated_at, user_id
                    FROM app.chat_sessions
                    WHERE user_id = %s
                    ORDER BY updated_at DESC
                    """,
                    (user_id,),
                )
            rows = cur.fetchall()
        return [_session_from_row(row) for row in rows]

    def _get_session_messages_sync(self, session_id: str) -> List[ChatMessage]:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute(
                """
                SELECT id, role, content, created_at
                FROM app.chat_messages
                WHERE session_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (session_id,),
            )
            rows = cur.fetchall()
        return [
            ChatMessage(content=row[2], role=row[1], timestamp=parse_datetime(row[3]), id=str(row[0]))
            for row in rows
        ]

    def _delete_session_sync(self, session_id: str) -> None:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute("DELETE FROM app.chat_messages WHERE session_id = %s", (session_id,))
            cur.execute("DELETE FROM app.chat_sessions WHERE id = %s", (session_id,))
            conn.commit()


def _session_from_row(row: Any) -> ChatSession:
    return ChatSession(
        id=str(row[0]),
        title=row[1],
        created_at=parse_datetime(row[2]),
        updated_at=parse_datetime(row[3]),
        user_id=row[4],
    )


class LocalChatSessionStore(ChatSessionStore):
    """Sesiones en archivos locales: un índice `chat_sessions` y una clave por sesión."""

    def __init__(self, kv: LocalKeyValueStore) -> None:
        self._kv = kv

    async def create_session(self, title: str, user_id: Optional[str] = None) -> ChatSession:
        return await asyncio.to_thread(self._create_session_sync, title, user_id)

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        sessions = await asyncio.to_thread(self._load_index)
        return next((s for s in sessions if s.id == session_id), None)

    async def append_message(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        return await asyncio.to_thread(self._append_message_sync, session_id, role, content)

    async def touch_session(self, session_id: str) -> None:
        await asyncio.to_thread(self._touch_session_sync, session_id)

    async def get_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        sessions = await asyncio.to_thread(self._load_index)
        if user_id is not None:
            sessions = [s for s in sessions if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    async def get_session_messages(self, session_id: str) -> List[ChatMessage]:
        return await asyncio.to_thread(self._load_messages, session_id)

    async def delete_session(self, session_id: str) -> None:
        await asyncio.to_thread(self._delete_session_sync, session_id)

    # --- Métodos privados sincrónicos -------------------------------------------------

    @staticmethod
    def _message_key(session_id: str) -> str:
        return f"chat_session_{session_id}"

    def _read(self, key: str) -> List[Dict[str, Any]]:
        try:
            return self._kv.read(key) or []
        except orjson.JSONDecodeError as exc:
            logger.warning("action=chat_local_read key=%s error=%s", key, exc)
            return []

    def _load_index(self) -> List[ChatSession]:
        return [
            ChatSession(
                id=item["id"],
                title=item.get("title", ""),
                created_at=parse_datetime(item.get("createdAt")),
                updated_at=parse_datetime(item.get("updatedAt")),
                user_id=item.get("userId"),
            )
            for item in self._read(SESSIONS_KEY)
        ]

    def _save_index(self, sessions: List[ChatSession]) -> None:
        self._kv.write(
            SESSIONS_KEY,
            [
                {
                    "id": s.id,
                    "title": s.title,
                    "createdAt": s.created_at.isoformat(),
                    "updatedAt": s.updated_at.isoformat(),
                    "userId": s.user_id,
                }
                for s in sessions
            ],
        )

    def _load_messages(self, session_id: str) -> List[ChatMessage]:
        return [
            ChatMessage(
                content=item["content"],
                role=item["role"],
                timestamp=parse_datetime(item.get("timestamp")),
                id=item.get("id"),
            )
            for item in self._read(self._message_key(session_id))
        ]

    def _create_session_sync(self, title: str, user_id: Optional[str]) -> ChatSession:
        now = utcnow()
        session = ChatSession(id=new_id(), title=title, created_at=now, updated_at=now, user_id=user_id)
        sessions = self._load_index()
        sessions.append(session)
        self._save_index(sessions)
        return session

    def _append_message_sync(self, session_id: str, role: ChatRole, content: str) -> ChatMessage:
        raw = self._read(self._message_key(session_id))
        message = ChatMessage(content=content, role=role, timestamp=utcnow(), id=str(len(raw) + 1))
        raw.append(
            {
                "id": message.id,
                "content": message.content,
                "role": message.role,
                "timestamp": message.timestamp.isoformat(),
            }
        )
        self._kv.write(self._message_key(session_id), raw)
        return message

    def _touch_session_sync(self, session_id: str) -> None:
        sessions = self._load_index()
        for session in sessions:
            if session.id == session_id:
                session.updated_at = utcnow()
        self._save_index(sessions)

    def _delete_session_sync(self, session_id: str) -> None:
        self._kv.delete(self._message_key(session_id))
        self._save_index([s for s in self._load_index() if s.id != session_id])


__all__ = [
    "ChatMessage",
    "ChatSession",
    "ChatSessionStore",
    "DatabaseChatSessionStore",
    "LocalChatSessionStore",
    "derive_title",
]
