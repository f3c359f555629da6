# Nombre de archivo: test_status_workflow.py
# Ubicación de archivo: tests/test_status_workflow.py
# Descripción: Pruebas de la política de transiciones de estado y su lectura desde el entorno

from __future__ import annotations

import pytest

from core.claims.models import ClaimStatus
from core.claims.workflow import StatusWorkflow, parse_status
from core.config import _parse_transitions
from core.errors import ValidationError


def test_default_workflow_allows_any_jump() -> None:
    workflow = StatusWorkflow()
    assert not workflow.restricted
    assert workflow.check(ClaimStatus.CLOSED, "New") is ClaimStatus.NEW
    assert workflow.allowed_targets(ClaimStatus.ANALYZING) == ClaimStatus.ordered()


def test_restricted_workflow() -> None:
    workflow = StatusWorkflow({"New": ["Screening", "Closed"]})
    assert workflow.can_transition(ClaimStatus.NEW, ClaimStatus.CLOSED)
    assert workflow.can_transition(ClaimStatus.SCREENING, ClaimStatus.SCREENING)
    assert not workflow.can_transition(ClaimStatus.SCREENING, ClaimStatus.NEW)
    assert workflow.allowed_targets(ClaimStatus.NEW) == [ClaimStatus.NEW, ClaimStatus.SCREENING, ClaimStatus.CLOSED]
    with pytest.raises(ValidationError):
        workflow.check(ClaimStatus.NEW, ClaimStatus.ACCEPTED)


def test_parse_status_rejects_unknown_values() -> None:
    assert parse_status(" Negotiation ") is ClaimStatus.NEGOTIATION
    with pytest.raises(ValidationError):
        parse_status("Archived")


def test_transition_table_from_environment_string() -> None:
    table = _parse_transitions("New:Screening|Closed; Screening:Analyzing")
    assert table == {"New": ("Screening", "Closed"), "Screening": ("Analyzing",)}
    assert _parse_transitions("") is None
