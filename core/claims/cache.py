# Nombre de archivo: cache.py
# Ubicación de archivo: core/claims/cache.py
# Descripción: Almacén clave-valor en disco (orjson) y espejo local de la lista de reclamos

"""Persistencia local usada en modo fallback.

``LocalKeyValueStore`` guarda un archivo JSON por clave conocida (``claims``,
``clients``, ``alerts``, ``chat_sessions``...). ``LocalFallbackCache`` mantiene
sobre esa base la réplica completa de los reclamos: sin desalojo, sin límite de
tamaño y sin TTL.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, List, Optional

import orjson

from .mapping import claim_from_json, claim_to_json
from .models import Claim
from .sample_data import sample_claims

logger = logging.getLogger(__name__)

CLAIMS_KEY = "claims"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalKeyValueStore:
    """Un archivo `<clave>.json` por clave; escrituras atómicas (tmp + replace)."""

    def __init__(self, data_dir: str | Path) -> None:
        self._dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Clave local inválida: {key!r}")
        return self._dir / f"{key}.json"

    def read(self, key: str) -> Optional[Any]:
        """Devuelve el valor decodificado o ``None`` si la clave no existe.

        Un archivo ilegible se propaga como ``orjson.JSONDecodeError`` para que
        el llamador decida cómo tratar la corrupción.
        """
        path = self._path(key)
        if not path.exists():
            return None
        return orjson.loads(path.read_bytes())

    def write(self, key: str, value: Any) -> None:
        path = self._path(key)
        self._dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_bytes(orjson.dumps(value))
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()


class LocalFallbackCache:
    """Réplica durable de la lista de reclamos bajo la clave `claims`."""

    def __init__(self, kv: LocalKeyValueStore, key: str = CLAIMS_KEY) -> None:
        self._kv = kv
        self._key = key

    @property
    def kv(self) -> LocalKeyValueStore:
        return self._kv

    def load(self) -> List[Claim]:
        try:
            raw = self._kv.read(self._key)
        except orjson.JSONDecodeError as exc:
            logger.warning("action=fallback_cache_load error=blob_corrupto detail=%s", exc)
            raw = None
        if raw is not None:
            try:
                return [claim_from_json(item) for item in raw]
            except (AttributeError, TypeError, ValueError, KeyError) as exc:
                logger.warning("action=fallback_cache_load error=formato_invalido detail=%s", exc)
        seed = sample_claims()
        self.save(seed)
        logger.info("action=fallback_cache_seed claims=%s", len(seed))
        return seed

    def save(self, claims: List[Claim]) -> None:
        self._kv.write(self._key, [claim_to_json(claim) for claim in claims])

    def find(self, claim_id: str) -> Optional[Claim]:
        return next((claim for claim in self.load() if claim.id == claim_id), None)


__all__ = ["CLAIMS_KEY", "LocalFallbackCache", "LocalKeyValueStore"]
