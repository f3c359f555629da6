# Nombre de archivo: claims_import.py
# Ubicación de archivo: core/parsers/claims_import.py
# Descripción: Importación de reclamos y clientes desde planillas CSV/XLSX/XLS con pandas

"""Importación masiva desde planillas.

Se aceptan archivos ``.csv``, ``.xlsx`` y ``.xls``. Las cabeceras se normalizan
(sin acentos, minúsculas, guiones bajos) y se traducen a los campos del reclamo
con una tabla de alias. Cada fila válida genera un alta en el almacén; las filas
con errores se informan en ``ImportResult.errors`` sin detener el resto.
"""

from __future__ import annotations

import io
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from core.claims.store import ClaimStore
from core.errors import ClaimsAppError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("csv", "xlsx", "xls")

CLAIM_ALIASES: Dict[str, str] = {
    "claim_number": "claim_number",
    "claimnumber": "claim_number",
    "numero_reclamo": "claim_number",
    "client_name": "client_name",
    "clientname": "client_name",
    "cliente": "client_name",
    "nombre_cliente": "client_name",
    "client_id": "client_id",
    "clientid": "client_id",
    "client_code": "client_id",
    "codigo_cliente": "client_id",
    "status": "status",
    "estado": "status",
    "department": "department",
    "departamento": "department",
    "identified_cause": "identified_cause",
    "identifiedcause": "identified_cause",
    "cause": "identified_cause",
    "causa": "identified_cause",
    "installed": "installed",
    "instalado": "installed",
    "installation_date": "installation_date",
    "installationdate": "installation_date",
    "fecha_instalacion": "installation_date",
    "creation_date": "creation_date",
    "creationdate": "creation_date",
    "fecha_creacion": "creation_date",
    "invoice_link": "invoice_link",
    "invoicelink": "invoice_link",
    "factura": "invoice_link",
    "claimed_amount": "claimed_amount",
    "claimedamount": "claimed_amount",
    "monto_reclamado": "claimed_amount",
    "solution_amount": "solution_amount",
    "solutionamount": "solution_amount",
    "monto_solucion": "solution_amount",
    "description": "description",
    "descripcion": "description",
    "assigned_to": "assigned_to",
    "assignedto": "assigned_to",
    "responsable": "assigned_to",
}

CLIENT_ALIASES: Dict[str, str] = {
    "client_code": "client_code",
    "clientcode": "client_code",
    "codigo_cliente": "client_code",
    "client_name": "client_name",
    "clientname": "client_name",
    "cliente": "client_name",
    "nombre": "client_name",
    "email": "email",
    "correo": "email",
    "mail": "email",
}

_MONEY = {"claimed_amount", "solution_amount"}
_DATES = {"installation_date", "creation_date"}
_TRUE_VALUES = {"true", "1", "yes", "si", "sí", "x", "oui"}


@dataclass(slots=True)
class ImportResult:
    success: bool
    inserted: int
    errors: List[str] = field(default_factory=list)


def normalize_header(value: Any) -> str:
    text = "".join(
        ch for ch in unicodedata.normalize("NFD", str(value)) if unicodedata.category(ch) != "Mn"
    )
    text = re.sub(r"[^0-9a-zA-Z]+", "_", text.strip().lower())
    return text.strip("_")


def read_table(filename: str, content: bytes) -> pd.DataFrame:
    extension = Path(filename or "").suffix.lower().lstrip(".")
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError("Formato inválido: subí un archivo CSV o Excel")
    buffer = io.BytesIO(content)
    try:
        if extension == "csv":
            return pd.read_csv(buffer, dtype=str, keep_default_na=False, sep=None, engine="python")
        return pd.read_excel(buffer, dtype=str).fillna("")
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValidationError(f"No se pudo leer la planilla: {exc}") from exc


def _rename(df: pd.DataFrame, aliases: Dict[str, str]) -> pd.DataFrame:
    rename = {}
    for column in df.columns:
        target = aliases.get(normalize_header(column))
        if target and target not in rename.values():
            rename[column] = target
    return df.rename(columns=rename)[list(rename.values())]


def _money(value: str) -> float:
    text = value.replace(" ", "").replace("$", "").replace("€", "")
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    else:
        text = text.replace(",", "")
    return float(text)


def _date(value: str) -> Optional[str]:
    parsed = pd.to_datetime(value, errors="coerce", dayfirst=True, utc=True)
    if pd.isna(parsed):
        raise ValueError(f"fecha inválida {value!r}")
    return parsed.isoformat()


def row_to_claim(row: Dict[str, str]) -> Dict[str, Any]:
    """Convierte una fila renombrada en datos de alta; lanza `ValueError` ante datos inválidos."""
    data: Dict[str, Any] = {}
    for key, raw in row.items():
        value = str(raw).strip()
        if not value:
            continue
        if key in _MONEY:
            data[key] = _money(value)
        elif key in _DATES:
            data[key] = _date(value)
        elif key == "installed":
            data[key] = value.lower() in _TRUE_VALUES
        else:
            data[key] = value
    return data


async def import_claims(store: ClaimStore, filename: str, content: bytes) -> ImportResult:
    try:
        df = _rename(read_table(filename, content), CLAIM_ALIASES)
    except ValidationError as exc:
        return ImportResult(success=False, inserted=0, errors=[exc.user_message])
    if df.empty:
        return ImportResult(success=False, inserted=0, errors=["La planilla no contiene filas"])

    inserted = 0
    errors: List[str] = []
    for position, row in enumerate(df.to_dict(orient="records"), start=2):
        try:
            data = row_to_claim(row)
            # El alta nace sin solución; el monto de la planilla se aplica como actualización
            solution = data.pop("solution_amount", None)
            claim_id = await store.create(data)
            if solution is not None:
                await store.update(claim_id, {"solution_amount": solution})
            inserted += 1
        except ValueError as exc:
            errors.append(f"Fila {position}: {exc}")
        except ClaimsAppError as exc:
            errors.append(f"Fila {position}: {exc.user_message}")
    logger.info("action=import_claims file=%s inserted=%s errors=%s", filename, inserted, len(errors))
    return ImportResult(success=inserted > 0, inserted=inserted, errors=errors)


async def import_clients(store: ClaimStore, filename: str, content: bytes) -> ImportResult:
    try:
        df = _rename(read_table(filename, content), CLIENT_ALIASES)
    except ValidationError as exc:
        return ImportResult(success=False, inserted=0, errors=[exc.user_message])
    if df.empty:
        return ImportResult(success=False, inserted=0, errors=["La planilla no contiene filas"])

    inserted = 0
    errors: List[str] = []
    for position, row in enumerate(df.to_dict(orient="records"), start=2):
        email = str(row.get("email") or "").strip()
        name = str(row.get("client_name") or "").strip()
        if not email or not name:
            errors.append(f"Fila {position}: nombre y email son obligatorios")
            continue
        try:
            await store.find_or_create_client(name, email, str(row.get("client_code") or "").strip() or None)
            inserted += 1
        except ClaimsAppError as exc:
            errors.append(f"Fila {position}: {exc.user_message}")
    logger.info("action=import_clients file=%s inserted=%s errors=%s", filename, inserted, len(errors))
    return ImportResult(success=inserted > 0, inserted=inserted, errors=errors)


__all__ = [
    "ALLOWED_EXTENSIONS",
    "ImportResult",
    "import_claims",
    "import_clients",
    "normalize_header",
    "read_table",
    "row_to_claim",
]
