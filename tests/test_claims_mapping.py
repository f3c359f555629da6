# Nombre de archivo: test_claims_mapping.py
# Ubicación de archivo: tests/test_claims_mapping.py
# Descripción: Pruebas de las funciones de mapeo fila/JSON de reclamos

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.claims import mapping
from core.claims.models import Alert, Claim, ClaimChecklist, ClaimChecklistItem, ClaimCommunication, ClaimStatus
from core.claims.sample_data import sample_claims
from core.errors import ValidationError


def _full_claim() -> Claim:
    claim = sample_claims()[0]
    claim.assigned_to = "ana@venture.com"
    claim.installation_date = datetime(2023, 6, 1, tzinfo=timezone.utc)
    claim.communications.append(
        ClaimCommunication(
            id="com-1",
            date=datetime(2023, 6, 16, 10, 30, tzinfo=timezone.utc),
            kind="email",
            content="Seguimiento",
            sender="cliente@acme.com",
            subject="Re: reclamo",
            recipients=["soporte@venture.com"],
            attachments=["foto.jpg"],
        )
    )
    claim.checklists.append(
        ClaimChecklist(id="cl-1", type="Défaut de Fabrication", items=[ClaimChecklistItem(id="ci-1", title="Lote")])
    )
    return claim


@pytest.mark.parametrize(
    "entity,columns",
    [
        (Claim, mapping.CLAIM_COLUMNS),
        (ClaimCommunication, mapping.COMMUNICATION_COLUMNS),
        (Alert, mapping.ALERT_COLUMNS),
    ],
)
def test_column_tables_cover_every_field(entity, columns) -> None:
    fields = {f.name for f in dataclasses.fields(entity)} - set(mapping.CLAIM_COLLECTIONS)
    assert fields == set(columns)


def test_claim_row_round_trip_preserves_every_column() -> None:
    claim = _full_claim()
    row = mapping.claim_to_row(claim)
    assert row["status"] == "New"
    restored = mapping.claim_from_row(
        row,
        products=claim.products,
        documents=claim.documents,
        communications=claim.communications,
        checklists=claim.checklists,
    )
    assert restored == claim


def test_claim_from_row_accepts_decimal_amounts() -> None:
    row = mapping.claim_to_row(sample_claims()[2])
    row["claimed_amount"] = Decimal("15800.00")
    row["solution_amount"] = Decimal("4200.00")
    claim = mapping.claim_from_row(row)
    assert claim.claimed_amount == 15800.0
    assert isinstance(claim.solution_amount, float)


def test_product_row_uses_price_per_sy_column() -> None:
    product = sample_claims()[0].products[0]
    row = mapping.product_to_row(product, "1")
    assert row["claim_id"] == "1"
    assert row["price_per_sy"] == product.price_per_unit
    assert mapping.product_from_row(row) == product


def test_json_round_trip_and_camel_case_keys() -> None:
    claim = _full_claim()
    payload = mapping.claim_to_json(claim)
    assert payload["claimNumber"] == claim.claim_number
    assert payload["products"][0]["pricePerSY"] == claim.products[0].price_per_unit
    assert payload["documents"][0]["type"] == claim.documents[0].kind
    assert isinstance(payload["creationDate"], str)
    assert mapping.claim_from_json(payload) == claim


def test_parse_datetime_variants() -> None:
    assert mapping.parse_datetime("2023-06-15") == datetime(2023, 6, 15, tzinfo=timezone.utc)
    assert mapping.parse_datetime("2023-06-15T10:00:00Z") == datetime(2023, 6, 15, 10, tzinfo=timezone.utc)
    assert mapping.parse_datetime("") is None
    assert mapping.parse_datetime(None) is None


def test_alert_row_drops_claim_number() -> None:
    alert = Alert(
        id="al-1",
        message="Nuevo reclamo",
        severity="info",
        read=False,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        claim_id="1",
        claim_number="CLM-2023-0135",
    )
    row = mapping.alert_to_row(alert)
    assert "claim_number" not in row
    assert row["type"] == "info"


def test_updates_to_row_rejects_unknown_fields() -> None:
    assert mapping.updates_to_row({"status": ClaimStatus.CLOSED}) == {"status": "Closed"}
    with pytest.raises(ValidationError):
        mapping.updates_to_row({"foo": 1})
