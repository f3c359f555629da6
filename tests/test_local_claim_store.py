# Nombre de archivo: test_local_claim_store.py
# Ubicación de archivo: tests/test_local_claim_store.py
# Descripción: Pruebas del almacén de reclamos en modo local (fallback)

from __future__ import annotations

import re

import pytest

from core.claims.cache import LocalFallbackCache
from core.claims.models import ClaimStatus
from core.claims.store import LocalClaimStore, UploadedFile
from core.claims.workflow import StatusWorkflow
from core.errors import NotFoundError, ValidationError

CLAIM_NUMBER_RE = re.compile(r"^CLM-\d{4}-\d{4}$")


@pytest.fixture
def store(cache: LocalFallbackCache) -> LocalClaimStore:
    return LocalClaimStore(cache)


@pytest.mark.asyncio
async def test_create_then_fetch_one_defaults(store: LocalClaimStore) -> None:
    claim_id = await store.create({"client_name": "Acme", "client_id": "A1", "claimed_amount": 1000})
    claim = await store.fetch_one(claim_id)
    assert claim is not None
    assert claim.status is ClaimStatus.NEW
    assert claim.solution_amount == 0
    assert claim.saved_amount == -1000
    assert CLAIM_NUMBER_RE.match(claim.claim_number)


@pytest.mark.asyncio
async def test_update_recomputes_saved_and_advances_last_updated(store: LocalClaimStore) -> None:
    claim_id = await store.create({"client_name": "Acme", "client_id": "A1", "claimed_amount": 1000})
    before = await store.fetch_one(claim_id)
    await store.update(claim_id, {"solution_amount": 400})
    after = await store.fetch_one(claim_id)
    assert after.saved_amount == 600
    assert after.last_updated > before.last_updated


@pytest.mark.asyncio
async def test_saved_amount_invariant_after_each_financial_update(store: LocalClaimStore) -> None:
    for changes in ({"claimed_amount": 5000}, {"solution_amount": 1200}, {"claimed_amount": 900, "solution_amount": 1000}):
        await store.update("2", changes)
        claim = await store.fetch_one("2")
        assert claim.saved_amount == claim.claimed_amount - claim.solution_amount


@pytest.mark.asyncio
async def test_create_requires_client_and_rejects_unknown_fields(store: LocalClaimStore) -> None:
    with pytest.raises(ValidationError):
        await store.create({"client_name": "Sin id"})
    with pytest.raises(ValidationError):
        await store.create({"client_name": "Acme", "client_id": "A1", "foo": "bar"})
    with pytest.raises(ValidationError):
        await store.create({"client_name": "Acme", "client_id": "A1", "claimed_amount": -5})
    with pytest.raises(ValidationError):
        await store.create({"client_name": "Acme", "client_id": "A1", "solution_amount": 100})


@pytest.mark.asyncio
async def test_update_validation(store: LocalClaimStore) -> None:
    with pytest.raises(ValidationError):
        await store.update("", {"description": "x"})
    with pytest.raises(ValidationError):
        await store.update("1", {"creation_date": "2024-01-01"})
    with pytest.raises(NotFoundError):
        await store.update("no-existe", {"description": "x"})
    with pytest.raises(ValidationError):
        await store.update("1", {"status": "Inventado"})


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes",
    [{"client_name": None}, {"claim_number": None}, {"department": None}, {"claimed_amount": None}, {"client_id": "  "}],
)
async def test_update_rejects_empty_required_fields(store: LocalClaimStore, changes) -> None:
    with pytest.raises(ValidationError):
        await store.update("1", changes)
    claim = await store.fetch_one("1")
    assert claim.client_name == "Acme Corporation"
    assert [c.id for c in await store.search("acme")] == ["1"]


@pytest.mark.asyncio
async def test_update_accepts_null_for_optional_fields(store: LocalClaimStore) -> None:
    await store.update("1", {"description": None, "assigned_to": None})
    claim = await store.fetch_one("1")
    assert claim.description is None
    assert claim.matches("acme")


@pytest.mark.asyncio
async def test_uninstalling_clears_installation_date(store: LocalClaimStore) -> None:
    await store.update("1", {"installation_date": "2023-06-01"})
    assert (await store.fetch_one("1")).installation_date is not None
    await store.update("1", {"installed": False})
    assert (await store.fetch_one("1")).installation_date is None


@pytest.mark.asyncio
async def test_restricted_workflow_rejects_jumps(cache: LocalFallbackCache) -> None:
    store = LocalClaimStore(cache, workflow=StatusWorkflow({"New": ["Screening"]}))
    await store.update("1", {"status": "Screening"})
    with pytest.raises(ValidationError):
        await store.update("1", {"status": "Closed"})
    assert (await store.fetch_one("1")).status is ClaimStatus.SCREENING


@pytest.mark.asyncio
async def test_fetch_all_is_idempotent_and_sorted(store: LocalClaimStore) -> None:
    first = await store.fetch_all()
    second = await store.fetch_all()
    assert [c.id for c in first] == [c.id for c in second]
    assert first == second
    dates = [c.creation_date for c in first]
    assert dates == sorted(dates, reverse=True)


@pytest.mark.asyncio
async def test_upload_over_ceiling_does_not_mutate(store: LocalClaimStore) -> None:
    before = await store.fetch_one("1")
    big = UploadedFile(filename="plano.pdf", content=b"0" * (10 * 1024 * 1024 + 1))
    with pytest.raises(ValidationError):
        await store.upload_document("1", big)
    after = await store.fetch_one("1")
    assert len(after.documents) == len(before.documents)
    assert after.last_updated == before.last_updated


@pytest.mark.asyncio
async def test_upload_document_uses_placeholder_urls(store: LocalClaimStore) -> None:
    image = await store.upload_document("1", UploadedFile(filename="daño.png", content=b"png"), "Site Condition")
    assert image.kind == "image"
    assert image.url.startswith("https://via.placeholder.com/300x200?text=")
    doc = await store.upload_document("1", UploadedFile(filename="informe.pdf", content=b"pdf"))
    assert doc.kind == "document"
    assert doc.url.endswith("text=PDF")
    claim = await store.fetch_one("1")
    assert [d.id for d in claim.documents[-2:]] == [image.id, doc.id]


@pytest.mark.asyncio
async def test_delete_and_missing_claim(store: LocalClaimStore) -> None:
    await store.delete("6")
    assert await store.fetch_one("6") is None
    with pytest.raises(NotFoundError):
        await store.delete("6")


@pytest.mark.asyncio
async def test_search_matches_number_client_and_description(store: LocalClaimStore) -> None:
    assert [c.id for c in await store.search("CLM-2023-0142")] == ["2"]
    assert [c.id for c in await store.search("hospitality")] == ["3"]
    assert {c.id for c in await store.search("shipping")} == {"4"}
    assert len(await store.search("")) == 6


@pytest.mark.asyncio
async def test_communications_and_checklists(store: LocalClaimStore) -> None:
    communication = await store.add_communication(
        "2", {"type": "call", "content": "Llamada con el cliente", "sender": "ana@venture.com"}
    )
    assert communication.kind == "call"
    with pytest.raises(ValidationError):
        await store.add_communication("2", {"type": "fax", "content": "x", "sender": "y"})

    checklist = await store.add_checklist("2", "Dommage lors du Transport")
    assert len(checklist.items) == 3
    assert checklist.progress == 0
    items = [{"id": item.id, "completed": True} for item in checklist.items[:2]]
    items.append({"id": checklist.items[2].id, "completed": False})
    updated = await store.update_checklist("2", checklist.id, items)
    assert updated.progress == 67
    assert [i.title for i in updated.items] == [i.title for i in checklist.items]

    claim = await store.fetch_one("2")
    assert claim.communications[0].id == communication.id
    assert claim.checklists[0].progress == 67
    with pytest.raises(NotFoundError):
        await store.update_checklist("2", "cl-inexistente", [])


@pytest.mark.asyncio
async def test_find_or_create_client_is_keyed_by_email(store: LocalClaimStore) -> None:
    first = await store.find_or_create_client("Acme", "Compras@Acme.com")
    second = await store.find_or_create_client("Otro nombre", "compras@acme.com")
    assert first.client_code == second.client_code
    assert re.match(r"^C\d{4}$", first.client_code)
    explicit = await store.find_or_create_client("Beta", "beta@example.com", "B0001")
    assert explicit.client_code == "B0001"
