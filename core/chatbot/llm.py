# Nombre de archivo: llm.py
# Ubicación de archivo: core/chatbot/llm.py
# Descripción: Cliente httpx para embeddings y completions de la API de OpenAI

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from core.config import LLMSettings
from core.errors import ChatPipelineError

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    async def embed(self, text: str) -> List[float]:
        """Vector de embedding del texto."""

    async def complete(self, messages: List[Dict[str, str]], *, max_tokens: int, temperature: float) -> str:
        """Texto de la respuesta del modelo."""


class OpenAIClient(LLMClient):
    """Llamadas REST a `/embeddings` y `/chat/completions`."""

    def __init__(self, settings: LLMSettings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._settings = settings
        self._client = http_client

    def _headers(self) -> Dict[str, str]:
        if not self._settings.api_key:
            raise ChatPipelineError("El asistente no está configurado", code="LLM_NOT_CONFIGURED")
        return {"Authorization": f"Bearer {self._settings.api_key}"}

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._settings.base_url}{path}"
        headers = self._headers()
        try:
            if self._client is not None:
                resp = await self._client.post(url, headers=headers, json=payload)
                resp.raise_for_status()
                return resp.json()
            async with httpx.AsyncClient(timeout=self._settings.timeout) as client:
                resp = await client.post(url, headers=headers, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error("action=llm_request path=%s status=%s", path, exc.response.status_code)
            raise ChatPipelineError(
                "El servicio de lenguaje devolvió un error",
                code="LLM_HTTP_ERROR",
                detail=f"{path} -> {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("action=llm_request path=%s error=%s", path, exc)
            raise ChatPipelineError(
                "No se pudo contactar al servicio de lenguaje", code="LLM_UNAVAILABLE", detail=str(exc)
            ) from exc

    async def embed(self, text: str) -> List[float]:
        data = await self._post("/embeddings", {"model": self._settings.embedding_model, "input": text})
        try:
            return [float(value) for value in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ChatPipelineError("Respuesta de embedding inválida", code="LLM_BAD_RESPONSE") from exc

    async def complete(self, messages: List[Dict[str, str]], *, max_tokens: int, temperature: float) -> str:
        payload = {
            "model": self._settings.chat_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        data = await self._post("/chat/completions", payload)
        try:
            return data["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ChatPipelineError("Respuesta de completion inválida", code="LLM_BAD_RESPONSE") from exc


__all__ = ["LLMClient", "OpenAIClient"]
