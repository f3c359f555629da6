# Nombre de archivo: test_alerts.py
# Ubicación de archivo: tests/test_alerts.py
# Descripción: Pruebas del almacén local de alertas

from __future__ import annotations

import pytest

from core.alerts import LocalAlertStore
from core.errors import NotFoundError, ValidationError


@pytest.fixture
def alerts(kv, cache) -> LocalAlertStore:
    return LocalAlertStore(kv, cache)


@pytest.mark.asyncio
async def test_alerts_are_scoped_and_sorted(alerts: LocalAlertStore) -> None:
    general = await alerts.create_alert("Mantenimiento programado", "warning")
    own = await alerts.create_alert("Reclamo asignado", user_id="u1", claim_id="3")
    await alerts.create_alert("Para otro usuario", user_id="u2")

    visible = await alerts.fetch_alerts("u1")
    assert [a.id for a in visible] == [own.id, general.id]
    assert visible[0].claim_number == "CLM-2023-0118"
    assert len(await alerts.fetch_alerts()) == 3


@pytest.mark.asyncio
async def test_mark_read_unread_and_all(alerts: LocalAlertStore) -> None:
    first = await alerts.create_alert("Uno", user_id="u1")
    await alerts.create_alert("Dos", user_id="u2")
    await alerts.mark_as_read(first.id)
    assert (await alerts.fetch_alerts("u1"))[0].read
    await alerts.mark_as_unread(first.id)
    assert not (await alerts.fetch_alerts("u1"))[0].read

    await alerts.mark_all_as_read("u1")
    assert all(a.read for a in await alerts.fetch_alerts("u1"))
    assert not any(a.read for a in await alerts.fetch_alerts("u2") if a.user_id == "u2")


@pytest.mark.asyncio
async def test_alert_validation(alerts: LocalAlertStore) -> None:
    with pytest.raises(ValidationError):
        await alerts.create_alert("  ")
    with pytest.raises(ValidationError):
        await alerts.create_alert("Hola", "critical")
    with pytest.raises(NotFoundError):
        await alerts.mark_as_read("al-inexistente")
