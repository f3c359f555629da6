# Nombre de archivo: test_claims_context.py
# Ubicación de archivo: tests/test_claims_context.py
# Descripción: Pruebas del contexto en memoria (carga, actualizaciones optimistas, totales y filtros)

from __future__ import annotations

import pytest
import pytest_asyncio

from core.claims import ClaimsContext, LocalClaimStore, UploadedFile
from core.claims.models import AuthUser, ClaimStatus
from core.errors import StoreError, ValidationError


@pytest.fixture
def store(cache) -> LocalClaimStore:
    return LocalClaimStore(cache)


@pytest_asyncio.fixture
async def context(store) -> ClaimsContext:
    ctx = ClaimsContext(store)
    await ctx.activate(AuthUser(id="u1", email="u1@venture.com", role="user", full_name="U1"))
    return ctx


@pytest.mark.asyncio
async def test_activate_loads_claims_once_per_identity(store) -> None:
    ctx = ClaimsContext(store)
    await ctx.activate(None)
    assert ctx.claims == []
    await ctx.activate("u1")
    assert len(ctx.claims) == 6
    assert ctx.user_id == "u1"
    assert not ctx.loading


@pytest.mark.asyncio
async def test_totals_follow_the_loaded_claims(context: ClaimsContext) -> None:
    totals = context.calculate_totals()
    assert totals.claimed == 12500 + 8750 + 15800 + 6400 + 22500 + 14500
    assert totals.solution == 4200 + 3200 + 18750 + 8900
    assert totals.saved == totals.claimed - totals.solution


@pytest.mark.asyncio
async def test_update_is_applied_optimistically(context: ClaimsContext, store: LocalClaimStore) -> None:
    before = context.find("2").last_updated
    await context.update("2", {"solution_amount": 750, "status": "Negotiation"})
    claim = context.find("2")
    assert claim.solution_amount == 750
    assert claim.saved_amount == 8750 - 750
    assert claim.status is ClaimStatus.NEGOTIATION
    assert claim.last_updated > before
    persisted = await store.fetch_one("2")
    assert persisted.saved_amount == claim.saved_amount


@pytest.mark.asyncio
async def test_update_errors_leave_memory_untouched(context: ClaimsContext) -> None:
    with pytest.raises(ValidationError):
        await context.update("2", {"claimed_amount": -1})
    assert context.find("2").claimed_amount == 8750


@pytest.mark.asyncio
async def test_add_refreshes_the_list(context: ClaimsContext) -> None:
    claim_id = await context.add({"client_name": "Nuevo", "client_id": "N1", "claimed_amount": 10})
    assert context.find(claim_id) is not None
    assert len(context.claims) == 7


@pytest.mark.asyncio
async def test_upload_appends_document_in_memory(context: ClaimsContext) -> None:
    count = len(context.find("4").documents)
    document = await context.upload_document("4", UploadedFile(filename="caja.jpg", content=b"jpg"), "Shipping")
    assert context.find("4").documents[-1].id == document.id
    assert len(context.find("4").documents) == count + 1


@pytest.mark.asyncio
async def test_results_after_deactivate_are_discarded(context: ClaimsContext) -> None:
    context.deactivate()
    await context.update("1", {"description": "tarde"})
    assert context.find("1").description != "tarde"
    await context.refresh()
    assert not context.active


@pytest.mark.asyncio
async def test_filter_sort_and_stats(context: ClaimsContext) -> None:
    technical = context.filter(department="Technical")
    assert {c.id for c in technical} == {"1", "3", "6"}
    assert [c.id for c in context.filter(status="Closed")] == ["6"]
    assert {c.id for c in context.filter(installed=False)} == {"2", "4"}
    ordered = context.sort("claimed_amount", descending=False)
    assert [c.id for c in ordered][:2] == ["4", "2"]
    with pytest.raises(ValidationError):
        context.sort("color")
    stats = context.dashboard_stats()
    assert stats.total == 6
    assert stats.open == 5
    assert stats.by_status["Accepted"] == 1


class _BrokenStore:
    mode = "local"

    async def fetch_all(self):
        raise StoreError("sin conexión")

    async def fetch_one(self, claim_id):
        raise StoreError("sin conexión")


@pytest.mark.asyncio
async def test_refresh_failure_sets_error_and_get_one_uses_memory() -> None:
    ctx = ClaimsContext(_BrokenStore())
    await ctx.activate("u1")
    assert ctx.error
    assert ctx.claims == []
    assert await ctx.get_one("1") is None
