# Nombre de archivo: test_fallback_cache.py
# Ubicación de archivo: tests/test_fallback_cache.py
# Descripción: Pruebas del almacén clave-valor local y del espejo de reclamos

from __future__ import annotations

from datetime import datetime

import pytest

from core.claims.cache import CLAIMS_KEY, LocalFallbackCache, LocalKeyValueStore


def test_kv_write_read_delete(kv: LocalKeyValueStore) -> None:
    assert kv.read("clients") is None
    kv.write("clients", [{"id": "1"}])
    assert kv.exists("clients")
    assert kv.read("clients") == [{"id": "1"}]
    kv.delete("clients")
    assert not kv.exists("clients")
    kv.delete("clients")


def test_kv_rejects_unsafe_keys(kv: LocalKeyValueStore) -> None:
    with pytest.raises(ValueError):
        kv.write("../fuera", {})


def test_empty_cache_is_seeded_with_sample_claims(cache: LocalFallbackCache, kv: LocalKeyValueStore) -> None:
    claims = cache.load()
    assert [c.id for c in claims] == ["1", "2", "3", "4", "5", "6"]
    assert kv.exists(CLAIMS_KEY)
    for claim in claims:
        assert claim.saved_amount == claim.claimed_amount - claim.solution_amount


def test_dates_are_revived_as_datetimes(cache: LocalFallbackCache) -> None:
    cache.load()
    claim = cache.find("3")
    assert claim is not None
    assert isinstance(claim.creation_date, datetime)
    assert isinstance(claim.documents[0].upload_date, datetime)


def test_corrupt_blob_reseeds(cache: LocalFallbackCache, kv: LocalKeyValueStore) -> None:
    kv.data_dir.mkdir(parents=True, exist_ok=True)
    (kv.data_dir / f"{CLAIMS_KEY}.json").write_bytes(b"{no es json")
    claims = cache.load()
    assert len(claims) == 6
    assert kv.read(CLAIMS_KEY)[0]["id"] == "1"


def test_invalid_shape_reseeds(cache: LocalFallbackCache, kv: LocalKeyValueStore) -> None:
    kv.write(CLAIMS_KEY, [{"id": "x", "status": "Desconocido"}])
    assert len(cache.load()) == 6


def test_save_then_load_keeps_changes(cache: LocalFallbackCache) -> None:
    claims = cache.load()
    claims[0].description = "Actualizado"
    cache.save(claims[:2])
    reloaded = cache.load()
    assert len(reloaded) == 2
    assert reloaded[0].description == "Actualizado"
