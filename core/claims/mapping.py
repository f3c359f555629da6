# Nombre de archivo: mapping.py
# Ubicación de archivo: core/claims/mapping.py
# Descripción: Conversión total entre entidades, filas de la base (snake_case) y JSON camelCase

"""Funciones de mapeo explícitas para los reclamos.

Hay dos formas persistidas de un reclamo:

* **fila**: diccionario con los nombres de columna de las tablas ``app.claims``
  y sus tablas hijas (``claim_products``, ``claim_documents``...).
* **JSON**: diccionario camelCase con las colecciones anidadas, usado por el
  espejo local (fallback) y equivalente a lo que expone la API.

Cada campo de cada entidad tiene una entrada en las tablas ``*_COLUMNS``; al
importar el módulo se verifica que ninguna entidad quede con campos sin mapear.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from core.errors import ValidationError

from .models import (
    Alert,
    Claim,
    ClaimChecklist,
    ClaimChecklistItem,
    ClaimCommunication,
    ClaimDocument,
    ClaimProduct,
    ClaimStatus,
    Client,
)

CLAIM_COLUMNS: Dict[str, str] = {
    "id": "id",
    "claim_number": "claim_number",
    "client_name": "client_name",
    "client_id": "client_id",
    "creation_date": "creation_date",
    "status": "status",
    "department": "department",
    "installed": "installed",
    "solution_amount": "solution_amount",
    "claimed_amount": "claimed_amount",
    "saved_amount": "saved_amount",
    "last_updated": "last_updated",
    "identified_cause": "identified_cause",
    "installation_date": "installation_date",
    "invoice_link": "invoice_link",
    "description": "description",
    "assigned_to": "assigned_to",
}
CLAIM_COLLECTIONS = ("products", "documents", "communications", "checklists")

PRODUCT_COLUMNS: Dict[str, str] = {
    "id": "id",
    "description": "description",
    "style": "style",
    "color": "color",
    "quantity": "quantity",
    "claimed_quantity": "claimed_quantity",
    "price_per_unit": "price_per_sy",
    "total_price": "total_price",
}

DOCUMENT_COLUMNS: Dict[str, str] = {
    "id": "id",
    "name": "name",
    "kind": "type",
    "url": "url",
    "upload_date": "upload_date",
    "category": "category",
    "uploaded_by": "uploaded_by",
}

COMMUNICATION_COLUMNS: Dict[str, str] = {
    "id": "id",
    "date": "date",
    "kind": "type",
    "content": "content",
    "sender": "sender",
    "subject": "subject",
    "recipients": "recipients",
    "attachments": "attachments",
}

CHECKLIST_COLUMNS: Dict[str, str] = {"id": "id", "type": "type"}
CHECKLIST_ITEM_COLUMNS: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "completed": "completed",
    "notes": "notes",
}

CLIENT_COLUMNS: Dict[str, str] = {
    "id": "id",
    "client_code": "client_code",
    "client_name": "client_name",
    "email": "email",
}

ALERT_COLUMNS: Dict[str, str] = {
    "id": "id",
    "message": "message",
    "severity": "type",
    "read": "read",
    "created_at": "created_at",
    "user_id": "user_id",
    "claim_id": "claim_id",
    "claim_number": "claim_number",
}

# Nombres JSON que difieren del camelCase automático
_JSON_OVERRIDES = {"kind": "type", "severity": "type", "price_per_unit": "pricePerSY"}

_DATE_FIELDS = {
    "creation_date",
    "last_updated",
    "installation_date",
    "upload_date",
    "date",
    "created_at",
}


def _assert_total(entity: type, columns: Mapping[str, str], exclude: Iterable[str] = ()) -> None:
    expected = {f.name for f in dataclasses.fields(entity)} - set(exclude)
    if expected != set(columns):
        missing = sorted(expected - set(columns))
        extra = sorted(set(columns) - expected)
        raise RuntimeError(f"Mapeo incompleto para {entity.__name__}: faltan={missing} sobran={extra}")


_assert_total(Claim, CLAIM_COLUMNS, exclude=CLAIM_COLLECTIONS)
_assert_total(ClaimProduct, PRODUCT_COLUMNS)
_assert_total(ClaimDocument, DOCUMENT_COLUMNS)
_assert_total(ClaimCommunication, COMMUNICATION_COLUMNS)
_assert_total(ClaimChecklist, CHECKLIST_COLUMNS, exclude=("items",))
_assert_total(ClaimChecklistItem, CHECKLIST_ITEM_COLUMNS)
_assert_total(Client, CLIENT_COLUMNS)
_assert_total(Alert, ALERT_COLUMNS)


def to_camel(name: str) -> str:
    if name in _JSON_OVERRIDES:
        return _JSON_OVERRIDES[name]
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Revive fechas serializadas (ISO 8601, con o sin `Z`, o solo fecha)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


# --- Filas (base relacional) -------------------------------------------------------


def _to_row(entity: Any, columns: Mapping[str, str]) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    for attr, column in columns.items():
        value = getattr(entity, attr)
        if isinstance(value, ClaimStatus):
            value = value.value
        elif isinstance(value, list):
            value = list(value)
        row[column] = value
    return row


def _from_row(row: Mapping[str, Any], columns: Mapping[str, str]) -> Dict[str, Any]:
    return {attr: row.get(column) for attr, column in columns.items()}


def claim_to_row(claim: Claim) -> Dict[str, Any]:
    return _to_row(claim, CLAIM_COLUMNS)


def claim_from_row(
    row: Mapping[str, Any],
    *,
    products: Iterable[ClaimProduct] = (),
    documents: Iterable[ClaimDocument] = (),
    communications: Iterable[ClaimCommunication] = (),
    checklists: Iterable[ClaimChecklist] = (),
) -> Claim:
    values = _from_row(row, CLAIM_COLUMNS)
    return Claim(
        id=str(values["id"]),
        claim_number=values["claim_number"] or "",
        client_name=values["client_name"] or "",
        client_id=values["client_id"] or "",
        creation_date=parse_datetime(values["creation_date"]),
        status=ClaimStatus(values["status"] or ClaimStatus.NEW.value),
        department=values["department"] or "",
        installed=bool(values["installed"]),
        solution_amount=_number(values["solution_amount"]),
        claimed_amount=_number(values["claimed_amount"]),
        saved_amount=_number(values["saved_amount"]),
        last_updated=parse_datetime(values["last_updated"]),
        identified_cause=values["identified_cause"],
        installation_date=parse_datetime(values["installation_date"]),
        invoice_link=values["invoice_link"],
        description=values["description"],
        assigned_to=values["assigned_to"],
        products=list(products),
        documents=list(documents),
        communications=list(communications),
        checklists=list(checklists),
    )


def product_to_row(product: ClaimProduct, claim_id: str) -> Dict[str, Any]:
    return {"claim_id": claim_id, **_to_row(product, PRODUCT_COLUMNS)}


def product_from_row(row: Mapping[str, Any]) -> ClaimProduct:
    values = _from_row(row, PRODUCT_COLUMNS)
    return ClaimProduct(
        id=str(values["id"]),
        description=values["description"] or "",
        style=values["style"] or "",
        color=values["color"] or "",
        quantity=int(values["quantity"] or 0),
        claimed_quantity=int(values["claimed_quantity"] or 0),
        price_per_unit=_number(values["price_per_unit"]),
        total_price=_number(values["total_price"]),
    )


def document_to_row(document: ClaimDocument, claim_id: str) -> Dict[str, Any]:
    return {"claim_id": claim_id, **_to_row(document, DOCUMENT_COLUMNS)}


def document_from_row(row: Mapping[str, Any]) -> ClaimDocument:
    values = _from_row(row, DOCUMENT_COLUMNS)
    values["id"] = str(values["id"])
    values["upload_date"] = parse_datetime(values["upload_date"])
    return ClaimDocument(**values)


def communication_to_row(communication: ClaimCommunication, claim_id: str) -> Dict[str, Any]:
    return {"claim_id": claim_id, **_to_row(communication, COMMUNICATION_COLUMNS)}


def communication_from_row(row: Mapping[str, Any]) -> ClaimCommunication:
    values = _from_row(row, COMMUNICATION_COLUMNS)
    values["id"] = str(values["id"])
    values["date"] = parse_datetime(values["date"])
    values["recipients"] = list(values["recipients"] or [])
    values["attachments"] = list(values["attachments"] or [])
    return ClaimCommunication(**values)


def checklist_to_row(checklist: ClaimChecklist, claim_id: str) -> Dict[str, Any]:
    return {"claim_id": claim_id, **_to_row(checklist, CHECKLIST_COLUMNS)}


def checklist_item_to_row(item: ClaimChecklistItem, checklist_id: str) -> Dict[str, Any]:
    return {"checklist_id": checklist_id, **_to_row(item, CHECKLIST_ITEM_COLUMNS)}


def checklist_from_row(row: Mapping[str, Any], items: Iterable[Mapping[str, Any]] = ()) -> ClaimChecklist:
    values = _from_row(row, CHECKLIST_COLUMNS)
    parsed_items = []
    for item_row in items:
        item = _from_row(item_row, CHECKLIST_ITEM_COLUMNS)
        item["id"] = str(item["id"])
        item["completed"] = bool(item["completed"])
        parsed_items.append(ClaimChecklistItem(**item))
    return ClaimChecklist(id=str(values["id"]), type=values["type"] or "", items=parsed_items)


def client_to_row(client: Client) -> Dict[str, Any]:
    return _to_row(client, CLIENT_COLUMNS)


def client_from_row(row: Mapping[str, Any]) -> Client:
    values = _from_row(row, CLIENT_COLUMNS)
    values["id"] = str(values["id"])
    return Client(**values)


def alert_to_row(alert: Alert) -> Dict[str, Any]:
    row = _to_row(alert, ALERT_COLUMNS)
    # claim_number no es columna: se resuelve por join con app.claims
    row.pop("claim_number")
    return row


def alert_from_row(row: Mapping[str, Any]) -> Alert:
    values = _from_row(row, ALERT_COLUMNS)
    values["id"] = str(values["id"])
    values["read"] = bool(values["read"])
    values["created_at"] = parse_datetime(values["created_at"])
    return Alert(**values)


def updates_to_row(updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Traduce una actualización parcial (campos de entidad) a columnas de `app.claims`."""
    row: Dict[str, Any] = {}
    for attr, value in updates.items():
        if attr not in CLAIM_COLUMNS:
            raise ValidationError(f"Campo no actualizable: {attr}")
        if isinstance(value, ClaimStatus):
            value = value.value
        row[CLAIM_COLUMNS[attr]] = value
    return row


# --- JSON camelCase (espejo local) ---------------------------------------------------


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ClaimStatus):
        return value.value
    if dataclasses.is_dataclass(value):
        return entity_to_json(value)
    if isinstance(value, list):
        return [_json_value(item) for item in value]
    return value


def entity_to_json(entity: Any) -> Dict[str, Any]:
    return {to_camel(f.name): _json_value(getattr(entity, f.name)) for f in dataclasses.fields(entity)}


def _entity_kwargs(entity: type, payload: Mapping[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(entity):
        key = to_camel(f.name)
        if key not in payload:
            continue
        value = payload[key]
        if f.name in _DATE_FIELDS:
            value = parse_datetime(value)
        kwargs[f.name] = value
    return kwargs


def claim_to_json(claim: Claim) -> Dict[str, Any]:
    return entity_to_json(claim)


def claim_from_json(payload: Mapping[str, Any]) -> Claim:
    kwargs = _entity_kwargs(Claim, payload)
    kwargs["status"] = ClaimStatus(kwargs.get("status") or ClaimStatus.NEW.value)
    for money in ("solution_amount", "claimed_amount", "saved_amount"):
        kwargs[money] = _number(kwargs.get(money))
    kwargs["installed"] = bool(kwargs.get("installed", False))
    kwargs["products"] = [ClaimProduct(**_entity_kwargs(ClaimProduct, p)) for p in payload.get("products") or []]
    kwargs["documents"] = [ClaimDocument(**_entity_kwargs(ClaimDocument, d)) for d in payload.get("documents") or []]
    kwargs["communications"] = [
        ClaimCommunication(**_entity_kwargs(ClaimCommunication, c)) for c in payload.get("communications") or []
    ]
    kwargs["checklists"] = [
        ClaimChecklist(
            id=c["id"],
            type=c.get("type", ""),
            items=[ClaimChecklistItem(**_entity_kwargs(ClaimChecklistItem, i)) for i in c.get("items") or []],
        )
        for c in payload.get("checklists") or []
    ]
    return Claim(**kwargs)


def client_from_json(payload: Mapping[str, Any]) -> Client:
    return Client(**_entity_kwargs(Client, payload))


def alert_from_json(payload: Mapping[str, Any]) -> Alert:
    return Alert(**_entity_kwargs(Alert, payload))


__all__ = [
    "CLAIM_COLUMNS",
    "alert_from_json",
    "alert_from_row",
    "alert_to_row",
    "checklist_from_row",
    "checklist_item_to_row",
    "checklist_to_row",
    "claim_from_json",
    "claim_from_row",
    "claim_to_json",
    "claim_to_row",
    "client_from_json",
    "client_from_row",
    "client_to_row",
    "communication_from_row",
    "communication_to_row",
    "document_from_row",
    "document_to_row",
    "entity_to_json",
    "parse_datetime",
    "product_from_row",
    "product_to_row",
    "to_camel",
    "updates_to_row",
]
