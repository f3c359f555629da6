# Nombre de archivo: retrieval.py
# Ubicación de archivo: core/chatbot/retrieval.py
# Descripción: Índice de similitud de documentos de referencia (pgvector o archivo local)

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import orjson
import psycopg

from core.claims.cache import LocalKeyValueStore
from core.claims.models import new_id

logger = logging.getLogger(__name__)

REFERENCE_DOCUMENTS_KEY = "reference_documents"


@dataclass(slots=True)
class RelevantDocument:
    content: str
    similarity: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentIndex(Protocol):
    async def search(
        self, embedding: Sequence[float], *, match_count: int, threshold: float
    ) -> List[RelevantDocument]:
        """Pasajes con similitud mayor al umbral, de mayor a menor."""


def _vector_literal(embedding: Sequence[float]) -> str:
    return "[" + ",".join(f"{float(value):.8f}" for value in embedding) + "]"


@dataclass
class DatabaseDocumentIndex(DocumentIndex):
    """Consulta la función `app.match_documents` (pgvector)."""

    dsn: str

    async def search(
        self, embedding: Sequence[float], *, match_count: int, threshold: float
    ) -> List[RelevantDocument]:
        return await asyncio.to_thread(self._search_sync, list(embedding), match_count, threshold)

    def _search_sync(self, embedding: List[float], match_count: int, threshold: float) -> List[RelevantDocument]:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:  # type: ignore[assignment]
            cur.execute(
                "SELECT content, metadata, similarity FROM app.match_documents(%s::vector, %s, %s)",
                (_vector_literal(embedding), threshold, match_count),
            )
            rows = cur.fetchall()
        return [
            RelevantDocument(content=row[0], metadata=row[1] or {}, similarity=float(row[2])) for row in rows
        ]


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    if len(left) != len(right) or not left:
        return 0.0
    dot = sum(a * b for a, b in zip(left, right))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    if norm == 0:
        return 0.0
    return dot / norm


class LocalDocumentIndex(DocumentIndex):
    """Corpus de referencia en un archivo local, con similitud coseno en memoria."""

    def __init__(self, kv: LocalKeyValueStore, key: str = REFERENCE_DOCUMENTS_KEY) -> None:
        self._kv = kv
        self._key = key

    def _entries(self) -> List[Dict[str, Any]]:
        try:
            return self._kv.read(self._key) or []
        except orjson.JSONDecodeError as exc:
            logger.warning("action=reference_index_load error=%s", exc)
            return []

    async def search(
        self, embedding: Sequence[float], *, match_count: int, threshold: float
    ) -> List[RelevantDocument]:
        entries = await asyncio.to_thread(self._entries)
        scored = []
        for entry in entries:
            similarity = cosine_similarity(embedding, entry.get("embedding") or [])
            if similarity > threshold:
                scored.append(
                    RelevantDocument(
                        content=entry.get("content", ""),
                        metadata=entry.get("metadata") or {},
                        similarity=similarity,
                    )
                )
        scored.sort(key=lambda doc: doc.similarity, reverse=True)
        return scored[:match_count]

    async def add(
        self, content: str, embedding: Sequence[float], metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        return await asyncio.to_thread(self._add_sync, content, list(embedding), metadata or {})

    def _add_sync(self, content: str, embedding: List[float], metadata: Dict[str, Any]) -> str:
        entries = self._entries()
        doc_id = new_id("ref-")
        entries.append({"id": doc_id, "content": content, "metadata": metadata, "embedding": embedding})
        self._kv.write(self._key, entries)
        return doc_id


__all__ = [
    "DatabaseDocumentIndex",
    "DocumentIndex",
    "LocalDocumentIndex",
    "RelevantDocument",
    "cosine_similarity",
]
