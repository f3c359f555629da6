# Nombre de archivo: store.py
# Ubicación de archivo: core/claims/store.py
# Descripción: Adaptadores de persistencia de reclamos (PostgreSQL vía SQLAlchemy y espejo local)

"""Almacenes de reclamos.

``ClaimStore`` es el contrato común. ``DatabaseClaimStore`` trabaja contra las
tablas ``app.claims*`` usando SQLAlchemy (sincrónico, encapsulado en hilos) y
responde las lecturas fallidas con el espejo local; ``LocalClaimStore`` usa solo
el espejo. La elección se hace una única vez en :func:`build_claim_store`.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol
from urllib.parse import quote

import orjson
from sqlalchemy import func, or_, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.errors import NotFoundError, StoreError, ValidationError
from db.models import claims as models

from .cache import LocalFallbackCache, LocalKeyValueStore
from .checklists import build_checklist, parse_items
from .mapping import (
    CLAIM_COLUMNS,
    checklist_from_row,
    checklist_item_to_row,
    checklist_to_row,
    claim_from_row,
    claim_to_row,
    client_from_json,
    client_from_row,
    client_to_row,
    communication_from_row,
    communication_to_row,
    document_from_row,
    document_to_row,
    entity_to_json,
    parse_datetime,
    product_from_row,
    product_to_row,
    updates_to_row,
)
from .models import (
    FINANCIAL_FIELDS,
    Claim,
    ClaimChecklist,
    ClaimCommunication,
    ClaimDocument,
    ClaimProduct,
    Client,
    generate_claim_number,
    generate_client_code,
    new_id,
    utcnow,
)
from .workflow import StatusWorkflow, parse_status

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
COMMUNICATION_KINDS = ("email", "call", "meeting", "note")
CLIENTS_KEY = "clients"

_CREATE_FIELDS = (set(CLAIM_COLUMNS) - {"id", "solution_amount", "saved_amount", "last_updated"}) | {"products"}
_UPDATE_FIELDS = set(CLAIM_COLUMNS) - {"id", "creation_date", "last_updated"}
_MONEY_FIELDS = ("claimed_amount", "solution_amount", "saved_amount")
_REQUIRED_FIELDS = frozenset(
    {
        "claim_number",
        "client_name",
        "client_id",
        "status",
        "department",
        "installed",
        "claimed_amount",
        "solution_amount",
        "saved_amount",
    }
)
_REQUIRED_TEXT = ("claim_number", "client_name", "client_id")
_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(slots=True)
class UploadedFile:
    """Archivo recibido para adjuntar a un reclamo."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class ClaimStore(Protocol):
    """Contrato de persistencia de reclamos."""

    mode: str

    async def fetch_all(self) -> List[Claim]:
        """Todos los reclamos, más recientes primero."""

    async def fetch_one(self, claim_id: str) -> Optional[Claim]:
        """Reclamo completo o ``None`` si no existe."""

    async def create(self, data: Mapping[str, Any]) -> str:
        """Crea el reclamo y devuelve su id."""

    async def update(self, claim_id: str, updates: Mapping[str, Any]) -> None:
        """Aplica una actualización parcial."""

    async def upload_document(
        self,
        claim_id: str,
        upload: UploadedFile,
        category: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> ClaimDocument:
        """Adjunta un archivo y devuelve el documento creado."""

    async def delete(self, claim_id: str) -> None:
        """Elimina el reclamo y sus colecciones."""

    async def search(self, term: str) -> List[Claim]:
        """Búsqueda sin distinción de mayúsculas."""

    async def add_document(self, claim_id: str, document: ClaimDocument) -> ClaimDocument:
        """Registra un documento ya alojado (sin subir contenido)."""

    async def add_communication(self, claim_id: str, data: Mapping[str, Any]) -> ClaimCommunication:
        """Agrega una comunicación al historial del reclamo."""

    async def add_checklist(self, claim_id: str, checklist_type: str) -> ClaimChecklist:
        """Crea una checklist desde su plantilla."""

    async def update_checklist(
        self, claim_id: str, checklist_id: str, items: Iterable[Mapping[str, Any]]
    ) -> ClaimChecklist:
        """Reemplaza los ítems de una checklist."""

    async def find_or_create_client(
        self, client_name: str, email: str, client_code: Optional[str] = None
    ) -> Client:
        """Busca un cliente por email o lo crea."""


# --- Reglas comunes (sin I/O) -------------------------------------------------------


def document_kind(filename: str) -> str:
    extension = Path(filename or "").suffix.lower().lstrip(".")
    return "image" if extension in IMAGE_EXTENSIONS else "document"


def stamp(previous: Optional[datetime] = None) -> datetime:
    """Marca temporal nueva, siempre posterior a ``previous``."""
    now = utcnow()
    previous = parse_datetime(previous) if previous is not None else None
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def _money(field_name: str, value: Any) -> float:
    try:
        amount = float(value if value not in (None, "") else 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Importe inválido en {field_name}: {value!r}") from exc
    if field_name != "saved_amount" and amount < 0:
        raise ValidationError(f"El importe {field_name} no puede ser negativo")
    return amount


def _require_id(claim_id: Any) -> str:
    if not isinstance(claim_id, str) or not claim_id.strip():
        raise ValidationError("Identificador de reclamo requerido")
    return claim_id.strip()


def _products(raw_products: Iterable[Any]) -> List[ClaimProduct]:
    products: List[ClaimProduct] = []
    for raw in raw_products or ():
        if isinstance(raw, ClaimProduct):
            products.append(raw)
            continue
        try:
            products.append(
                ClaimProduct.create(
                    description=str(raw.get("description") or ""),
                    style=str(raw.get("style") or ""),
                    color=str(raw.get("color") or ""),
                    quantity=int(raw.get("quantity") or 0),
                    price_per_unit=float(raw.get("price_per_unit") or 0),
                    claimed_quantity=raw.get("claimed_quantity"),
                )
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise ValidationError(f"Producto inválido: {raw!r}") from exc
    return products


def build_new_claim(data: Mapping[str, Any]) -> Claim:
    """Valida y completa los datos de alta (número, estado, importes, fechas).

    Un reclamo nace sin solución ofrecida: `solution_amount` es 0 y el ahorro
    queda en `-claimed_amount` hasta la primera actualización financiera.
    """
    unknown = sorted(set(data) - _CREATE_FIELDS)
    if unknown:
        raise ValidationError(f"Campos desconocidos: {', '.join(unknown)}")
    client_name = str(data.get("client_name") or "").strip()
    client_id = str(data.get("client_id") or "").strip()
    if not client_name or not client_id:
        raise ValidationError("El nombre y el identificador del cliente son obligatorios")

    now = utcnow()
    claimed = _money("claimed_amount", data.get("claimed_amount"))
    installed = bool(data.get("installed", False))
    return Claim(
        id=new_id(),
        claim_number=str(data.get("claim_number") or "").strip() or generate_claim_number(now),
        client_name=client_name,
        client_id=client_id,
        creation_date=parse_datetime(data.get("creation_date")) or now,
        status=parse_status(data.get("status") or "New"),
        department=str(data.get("department") or ""),
        installed=installed,
        solution_amount=0.0,
        claimed_amount=claimed,
        saved_amount=0.0 - claimed,
        last_updated=now,
        identified_cause=data.get("identified_cause"),
        installation_date=parse_datetime(data.get("installation_date")) if installed else None,
        invoice_link=data.get("invoice_link"),
        description=data.get("description"),
        assigned_to=data.get("assigned_to"),
        products=_products(data.get("products") or ()),
    )


def validate_update_fields(claim_id: Any, updates: Mapping[str, Any]) -> str:
    claim_id = _require_id(claim_id)
    unknown = sorted(set(updates) - _UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Campos no actualizables: {', '.join(unknown)}")
    nulls = sorted(name for name in _REQUIRED_FIELDS if name in updates and updates[name] is None)
    if nulls:
        raise ValidationError(f"Campos obligatorios sin valor: {', '.join(nulls)}")
    for name in _REQUIRED_TEXT:
        if name in updates and not str(updates[name]).strip():
            raise ValidationError(f"El campo {name} no puede quedar vacío")
    return claim_id


def resolve_update(current: Claim, updates: Mapping[str, Any], workflow: StatusWorkflow) -> Dict[str, Any]:
    """Calcula los cambios efectivos: estado validado, ahorro recalculado y `last_updated`."""
    changes: Dict[str, Any] = dict(updates)
    if "status" in changes:
        changes["status"] = workflow.check(current.status, changes["status"])
    for money in _MONEY_FIELDS:
        if money in changes:
            changes[money] = _money(money, changes[money])
    if any(name in changes for name in FINANCIAL_FIELDS) and "saved_amount" not in changes:
        claimed = changes.get("claimed_amount", current.claimed_amount)
        solution = changes.get("solution_amount", current.solution_amount)
        changes["saved_amount"] = claimed - solution
    if "installed" in changes:
        changes["installed"] = bool(changes["installed"])
    if "installation_date" in changes:
        changes["installation_date"] = parse_datetime(changes["installation_date"])
    if not changes.get("installed", current.installed):
        changes["installation_date"] = None
    changes["last_updated"] = stamp(current.last_updated)
    return changes


def apply_changes(claim: Claim, changes: Mapping[str, Any]) -> None:
    for name, value in changes.items():
        setattr(claim, name, value)


def build_communication(data: Mapping[str, Any]) -> ClaimCommunication:
    kind = str(data.get("kind") or data.get("type") or "note")
    if kind not in COMMUNICATION_KINDS:
        raise ValidationError(f"Tipo de comunicación inválido: {kind}")
    content = str(data.get("content") or "").strip()
    sender = str(data.get("sender") or "").strip()
    if not content or not sender:
        raise ValidationError("La comunicación necesita contenido y remitente")
    return ClaimCommunication(
        id=new_id("com-"),
        date=parse_datetime(data.get("date")) or utcnow(),
        kind=kind,  # type: ignore[arg-type]
        content=content,
        sender=sender,
        subject=data.get("subject"),
        recipients=list(data.get("recipients") or []),
        attachments=list(data.get("attachments") or []),
    )


def build_document_reference(
    name: str,
    url: Optional[str],
    *,
    content_type: Optional[str] = None,
    category: Optional[str] = None,
    uploaded_by: Optional[str] = None,
) -> ClaimDocument:
    """Documento que apunta a un archivo ya alojado en otro servicio.

    Sin URL se registra igual, con una imagen de reemplazo según el tipo.
    """
    if not name:
        raise ValidationError("El documento necesita nombre")
    if content_type:
        kind = "image" if "image" in content_type.lower() else "document"
    else:
        kind = document_kind(name)
    return ClaimDocument(
        id=new_id("doc-"),
        name=name,
        kind=kind,  # type: ignore[arg-type]
        url=url or placeholder_url(name, kind),
        upload_date=utcnow(),
        category=category,
        uploaded_by=uploaded_by,
    )


def placeholder_url(filename: str, kind: str) -> str:
    if kind == "image":
        return f"https://via.placeholder.com/300x200?text={quote(filename)}"
    extension = Path(filename).suffix.lstrip(".").upper() or "FILE"
    return f"https://via.placeholder.com/100x100?text={quote(extension)}"


def check_upload(upload: UploadedFile, max_upload_bytes: int) -> None:
    if not upload.filename:
        raise ValidationError("El archivo no tiene nombre")
    if upload.size > max_upload_bytes:
        raise ValidationError(
            f"El archivo supera el máximo permitido de {max_upload_bytes // (1024 * 1024)} MB"
        )


class UploadStorage:
    """Directorio de adjuntos publicado bajo una URL base."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self._root = Path(root)
        self._base_url = public_base_url.rstrip("/")

    def save(self, claim_id: str, filename: str, content: bytes) -> str:
        if not _SAFE_SEGMENT.match(claim_id):
            raise ValidationError("Identificador de reclamo inválido para almacenamiento")
        extension = Path(filename).suffix.lower()
        stored = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:10]}{extension}"
        target = self._root / claim_id / stored
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return f"{self._base_url}/{claim_id}/{stored}"

    def remove(self, url: str) -> None:
        relative = url[len(self._base_url):].lstrip("/") if url.startswith(self._base_url) else ""
        if relative:
            (self._root / relative).unlink(missing_ok=True)


# --- Modo local ---------------------------------------------------------------------


class LocalClaimStore:
    """Reclamos sobre el espejo local (lectura-modificación-escritura del blob completo)."""

    mode = "local"

    def __init__(
        self,
        cache: LocalFallbackCache,
        *,
        workflow: Optional[StatusWorkflow] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self._cache = cache
        self._workflow = workflow or StatusWorkflow()
        self._max_upload_bytes = max_upload_bytes

    async def _load(self) -> List[Claim]:
        return await asyncio.to_thread(self._cache.load)

    async def _save(self, claims: List[Claim]) -> None:
        await asyncio.to_thread(self._cache.save, claims)

    @staticmethod
    def _find(claims: List[Claim], claim_id: str) -> Claim:
        for claim in claims:
            if claim.id == claim_id:
                return claim
        raise NotFoundError(f"Reclamo {claim_id} no encontrado")

    async def fetch_all(self) -> List[Claim]:
        claims = await self._load()
        return sorted(claims, key=lambda claim: claim.creation_date, reverse=True)

    async def fetch_one(self, claim_id: str) -> Optional[Claim]:
        claims = await self._load()
        return next((claim for claim in claims if claim.id == claim_id), None)

    async def create(self, data: Mapping[str, Any]) -> str:
        claim = build_new_claim(data)
        claims = await self._load()
        claims.insert(0, claim)
        await self._save(claims)
        logger.info("action=claim_create mode=local claim_id=%s claim_number=%s", claim.id, claim.claim_number)
        return claim.id

    async def update(self, claim_id: str, updates: Mapping[str, Any]) -> None:
        claim_id = validate_update_fields(claim_id, updates)
        claims = await self._load()
        claim = self._find(claims, claim_id)
        apply_changes(claim, resolve_update(claim, updates, self._workflow))
        await self._save(claims)
        logger.info("action=claim_update mode=local claim_id=%s fields=%s", claim_id, ",".join(sorted(updates)))

    async def upload_document(
        self,
        claim_id: str,
        upload: UploadedFile,
        category: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> ClaimDocument:
        check_upload(upload, self._max_upload_bytes)
        claims = await self._load()
        claim = self._find(claims, _require_id(claim_id))
        kind = document_kind(upload.filename)
        document = ClaimDocument(
            id=new_id("doc-"),
            name=upload.filename,
            kind=kind,  # type: ignore[arg-type]
            url=placeholder_url(upload.filename, kind),
            upload_date=utcnow(),
            category=category,
            uploaded_by=uploaded_by,
        )
        claim.documents.append(document)
        claim.last_updated = stamp(claim.last_updated)
        await self._save(claims)
        logger.info("action=claim_document_upload mode=local claim_id=%s bytes=%s", claim.id, upload.size)
        return document

    async def delete(self, claim_id: str) -> None:
        claims = await self._load()
        remaining = [claim for claim in claims if claim.id != claim_id]
        if len(remaining) == len(claims):
            raise NotFoundError(f"Reclamo {claim_id} no encontrado")
        await self._save(remaining)
        logger.info("action=claim_delete mode=local claim_id=%s", claim_id)

    async def search(self, term: str) -> List[Claim]:
        return [claim for claim in await self.fetch_all() if claim.matches(term)]

    async def add_document(self, claim_id: str, document: ClaimDocument) -> ClaimDocument:
        claims = await self._load()
        claim = self._find(claims, _require_id(claim_id))
        claim.documents.append(document)
        claim.last_updated = stamp(claim.last_updated)
        await self._save(claims)
        return document

    async def add_communication(self, claim_id: str, data: Mapping[str, Any]) -> ClaimCommunication:
        communication = build_communication(data)
        claims = await self._load()
        claim = self._find(claims, _require_id(claim_id))
        claim.communications.append(communication)
        claim.last_updated = stamp(claim.last_updated)
        await self._save(claims)
        return communication

    async def add_checklist(self, claim_id: str, checklist_type: str) -> ClaimChecklist:
        checklist = build_checklist(checklist_type)
        claims = await self._load()
        claim = self._find(claims, _require_id(claim_id))
        claim.checklists.append(checklist)
        claim.last_updated = stamp(claim.last_updated)
        await self._save(claims)
        return checklist

    async def update_checklist(
        self, claim_id: str, checklist_id: str, items: Iterable[Mapping[str, Any]]
    ) -> ClaimChecklist:
        claims = await self._load()
        claim = self._find(claims, _require_id(claim_id))
        checklist = next((c for c in claim.checklists if c.id == checklist_id), None)
        if checklist is None:
            raise NotFoundError(f"Checklist {checklist_id} no encontrada")
        checklist.items = parse_items(items, checklist)
        claim.last_updated = stamp(claim.last_updated)
        await self._save(claims)
        return checklist

    async def find_or_create_client(
        self, client_name: str, email: str, client_code: Optional[str] = None
    ) -> Client:
        return await asyncio.to_thread(self._find_or_create_client_sync, client_name, email, client_code)

    def _find_or_create_client_sync(self, client_name: str, email: str, client_code: Optional[str]) -> Client:
        kv: LocalKeyValueStore = self._cache.kv
        try:
            raw = kv.read(CLIENTS_KEY) or []
        except orjson.JSONDecodeError:
            logger.warning("action=clients_load error=blob_corrupto")
            raw = []
        clients = [client_from_json(item) for item in raw]
        normalized = (email or "").strip().lower()
        if not normalized:
            raise ValidationError("El email del cliente es obligatorio")
        for client in clients:
            if client.email.lower() == normalized:
                return client
        codes = {client.client_code for client in clients}
        code = client_code or generate_client_code()
        while code in codes:
            code = generate_client_code()
        client = Client(id=new_id(), client_code=code, client_name=client_name.strip() or normalized, email=normalized)
        clients.append(client)
        kv.write(CLIENTS_KEY, [entity_to_json(item) for item in clients])
        logger.info("action=client_create mode=local client_code=%s", client.client_code)
        return client


# --- Modo remoto --------------------------------------------------------------------


def _columns(record: Any) -> Dict[str, Any]:
    return {column.key: getattr(record, column.key) for column in record.__table__.columns}


def _is_relation_error(exc: DBAPIError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return "relation" in message or "does not exist" in message or "no such table" in message


def _claim_from_record(record: Any, *, nested: Iterable[str] = ()) -> Claim:
    nested = set(nested)
    return claim_from_row(
        _columns(record),
        products=[product_from_row(_columns(p)) for p in record.products] if "products" in nested else (),
        documents=[document_from_row(_columns(d)) for d in record.documents] if "documents" in nested else (),
        communications=(
            [communication_from_row(_columns(c)) for c in record.communications] if "communications" in nested else ()
        ),
        checklists=(
            [checklist_from_row(_columns(c), [_columns(i) for i in c.items]) for c in record.checklists]
            if "checklists" in nested
            else ()
        ),
    )


class DatabaseClaimStore:
    """Reclamos en PostgreSQL (SQLAlchemy sincrónico encapsulado en hilos)."""

    mode = "remote"

    def __init__(
        self,
        session_factory: Callable[[], Session],
        fallback: LocalFallbackCache,
        *,
        uploads: UploadStorage,
        workflow: Optional[StatusWorkflow] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self._session_factory = session_factory
        self._fallback = fallback
        self._uploads = uploads
        self._workflow = workflow or StatusWorkflow()
        self._max_upload_bytes = max_upload_bytes

    async def _write(self, action: str, message: str, func_sync: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func_sync, *args)
        except SQLAlchemyError as exc:
            logger.error("action=%s error=%s", action, exc)
            raise StoreError(message, detail=str(exc)) from exc

    # Lecturas ------------------------------------------------------------------------

    async def fetch_all(self) -> List[Claim]:
        try:
            return await asyncio.to_thread(self._query_claims_sync, None)
        except SQLAlchemyError as exc:
            logger.warning("action=claims_fetch_all fallback=cache error=%s", exc)
            return await asyncio.to_thread(self._fallback.load)

    async def search(self, term: str) -> List[Claim]:
        needle = (term or "").strip()
        if not needle:
            return await self.fetch_all()
        try:
            return await asyncio.to_thread(self._query_claims_sync, needle)
        except SQLAlchemyError as exc:
            logger.warning("action=claims_search fallback=cache error=%s", exc)
            claims = await asyncio.to_thread(self._fallback.load)
            return [claim for claim in claims if claim.matches(needle)]

    async def fetch_one(self, claim_id: str) -> Optional[Claim]:
        try:
            return await asyncio.to_thread(self._fetch_one_sync, claim_id)
        except SQLAlchemyError as exc:
            logger.warning("action=claim_fetch_one fallback=cache claim_id=%s error=%s", claim_id, exc)
            return await asyncio.to_thread(self._fallback.find, claim_id)

    def _query_claims_sync(self, term: Optional[str]) -> List[Claim]:
        base = select(models.ClaimRecord).order_by(models.ClaimRecord.creation_date.desc())
        if term:
            pattern = f"%{term}%"
            base = base.where(
                or_(
                    models.ClaimRecord.claim_number.ilike(pattern),
                    models.ClaimRecord.client_name.ilike(pattern),
                    models.ClaimRecord.client_id.ilike(pattern),
                    models.ClaimRecord.description.ilike(pattern),
                    models.ClaimRecord.department.ilike(pattern),
                )
            )
        with self._session_factory() as session:
            try:
                nested = base.options(
                    selectinload(models.ClaimRecord.products),
                    selectinload(models.ClaimRecord.documents),
                )
                records = session.scalars(nested).all()
                return [_claim_from_record(r, nested=("products", "documents")) for r in records]
            except DBAPIError as exc:
                if not _is_relation_error(exc):
                    raise
                session.rollback()
                logger.warning("action=claims_query degrade=flat error=%s", exc.orig)
                records = session.scalars(base).all()
                return [_claim_from_record(r) for r in records]

    def _fetch_one_sync(self, claim_id: str) -> Optional[Claim]:
        with self._session_factory() as session:
            try:
                stmt = (
                    select(models.ClaimRecord)
                    .where(models.ClaimRecord.id == claim_id)
                    .options(
                        selectinload(models.ClaimRecord.products),
                        selectinload(models.ClaimRecord.documents),
                        selectinload(models.ClaimRecord.communications),
                        selectinload(models.ClaimRecord.checklists).selectinload(models.ClaimChecklistRecord.items),
                    )
                )
                record = session.scalars(stmt).first()
                if record is None:
                    return None
                return _claim_from_record(
                    record, nested=("products", "documents", "communications", "checklists")
                )
            except DBAPIError as exc:
                if not _is_relation_error(exc):
                    raise
                session.rollback()
                logger.warning("action=claim_fetch_one degrade=flat claim_id=%s error=%s", claim_id, exc.orig)
            record = session.scalars(select(models.ClaimRecord).where(models.ClaimRecord.id == claim_id)).first()
            if record is None:
                return None
            claim = _claim_from_record(record)
            claim.documents = [
                document_from_row(row) for row in self._backfill(session, models.ClaimDocumentRecord, claim_id)
            ]
            claim.communications = [
                communication_from_row(row)
                for row in self._backfill(session, models.ClaimCommunicationRecord, claim_id)
            ]
            return claim

    @staticmethod
    def _backfill(session: Session, record_cls: Any, claim_id: str) -> List[Dict[str, Any]]:
        try:
            rows = session.scalars(select(record_cls).where(record_cls.claim_id == claim_id)).all()
            return [_columns(row) for row in rows]
        except DBAPIError as exc:
            if not _is_relation_error(exc):
                raise
            session.rollback()
            logger.warning("action=claim_backfill table=%s error=%s", record_cls.__tablename__, exc.orig)
            return []

    # Escrituras ----------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> str:
        claim = build_new_claim(data)
        await self._write("claim_create", "No se pudo crear el reclamo", self._create_sync, claim)
        logger.info("action=claim_create mode=remote claim_id=%s claim_number=%s", claim.id, claim.claim_number)
        return claim.id

    def _create_sync(self, claim: Claim) -> None:
        with self._session_factory() as session:
            record = models.ClaimRecord(**claim_to_row(claim))
            record.products = [models.ClaimProductRecord(**product_to_row(p, claim.id)) for p in claim.products]
            session.add(record)
            session.commit()

    async def update(self, claim_id: str, updates: Mapping[str, Any]) -> None:
        claim_id = validate_update_fields(claim_id, updates)
        await self._write("claim_update", "No se pudo actualizar el reclamo", self._update_sync, claim_id, updates)
        logger.info("action=claim_update mode=remote claim_id=%s fields=%s", claim_id, ",".join(sorted(updates)))

    def _update_sync(self, claim_id: str, updates: Mapping[str, Any]) -> None:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            changes = resolve_update(claim_from_row(_columns(record)), updates, self._workflow)
            for column, value in updates_to_row(changes).items():
                setattr(record, column, value)
            session.commit()

    async def upload_document(
        self,
        claim_id: str,
        upload: UploadedFile,
        category: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> ClaimDocument:
        check_upload(upload, self._max_upload_bytes)
        claim_id = _require_id(claim_id)
        document = await self._write(
            "claim_document_upload",
            "No se pudo subir el documento",
            self._upload_sync,
            claim_id,
            upload,
            category,
            uploaded_by,
        )
        logger.info("action=claim_document_upload mode=remote claim_id=%s bytes=%s", claim_id, upload.size)
        return document

    def _upload_sync(
        self, claim_id: str, upload: UploadedFile, category: Optional[str], uploaded_by: Optional[str]
    ) -> ClaimDocument:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            try:
                url = self._uploads.save(claim_id, upload.filename, upload.content)
            except OSError as exc:
                raise StoreError("No se pudo guardar el archivo", detail=str(exc)) from exc
            document = ClaimDocument(
                id=new_id("doc-"),
                name=upload.filename,
                kind=document_kind(upload.filename),  # type: ignore[arg-type]
                url=url,
                upload_date=utcnow(),
                category=category,
                uploaded_by=uploaded_by,
            )
            try:
                session.add(models.ClaimDocumentRecord(**document_to_row(document, claim_id)))
                record.last_updated = stamp(record.last_updated)
                session.commit()
            except SQLAlchemyError:
                self._uploads.remove(url)
                raise
            return document

    async def delete(self, claim_id: str) -> None:
        claim_id = _require_id(claim_id)
        await self._write("claim_delete", "No se pudo eliminar el reclamo", self._delete_sync, claim_id)
        logger.info("action=claim_delete mode=remote claim_id=%s", claim_id)

    def _delete_sync(self, claim_id: str) -> None:
        with self._session_factory() as session:
            session.delete(self._get_claim_record(session, claim_id))
            session.commit()

    async def add_document(self, claim_id: str, document: ClaimDocument) -> ClaimDocument:
        await self._write(
            "claim_document_add",
            "No se pudo registrar el documento",
            self._add_document_sync,
            _require_id(claim_id),
            document,
        )
        return document

    def _add_document_sync(self, claim_id: str, document: ClaimDocument) -> None:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            session.add(models.ClaimDocumentRecord(**document_to_row(document, claim_id)))
            record.last_updated = stamp(record.last_updated)
            session.commit()

    async def add_communication(self, claim_id: str, data: Mapping[str, Any]) -> ClaimCommunication:
        communication = build_communication(data)
        await self._write(
            "claim_communication_add",
            "No se pudo registrar la comunicación",
            self._add_communication_sync,
            _require_id(claim_id),
            communication,
        )
        return communication

    def _add_communication_sync(self, claim_id: str, communication: ClaimCommunication) -> None:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            session.add(models.ClaimCommunicationRecord(**communication_to_row(communication, claim_id)))
            record.last_updated = stamp(record.last_updated)
            session.commit()

    async def add_checklist(self, claim_id: str, checklist_type: str) -> ClaimChecklist:
        checklist = build_checklist(checklist_type)
        await self._write(
            "claim_checklist_add",
            "No se pudo crear la checklist",
            self._add_checklist_sync,
            _require_id(claim_id),
            checklist,
        )
        return checklist

    def _add_checklist_sync(self, claim_id: str, checklist: ClaimChecklist) -> None:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            checklist_record = models.ClaimChecklistRecord(**checklist_to_row(checklist, claim_id))
            checklist_record.items = [
                models.ClaimChecklistItemRecord(position=position, **checklist_item_to_row(item, checklist.id))
                for position, item in enumerate(checklist.items)
            ]
            session.add(checklist_record)
            record.last_updated = stamp(record.last_updated)
            session.commit()

    async def update_checklist(
        self, claim_id: str, checklist_id: str, items: Iterable[Mapping[str, Any]]
    ) -> ClaimChecklist:
        return await self._write(
            "claim_checklist_update",
            "No se pudo actualizar la checklist",
            self._update_checklist_sync,
            _require_id(claim_id),
            checklist_id,
            list(items),
        )

    def _update_checklist_sync(
        self, claim_id: str, checklist_id: str, items: List[Mapping[str, Any]]
    ) -> ClaimChecklist:
        with self._session_factory() as session:
            record = self._get_claim_record(session, claim_id)
            checklist_record = session.get(models.ClaimChecklistRecord, checklist_id)
            if checklist_record is None or checklist_record.claim_id != claim_id:
                raise NotFoundError(f"Checklist {checklist_id} no encontrada")
            existing = checklist_from_row(_columns(checklist_record), [_columns(i) for i in checklist_record.items])
            parsed = parse_items(items, existing)
            current = {item.id: item for item in checklist_record.items}
            kept = []
            for position, item in enumerate(parsed):
                item_record = current.get(item.id)
                if item_record is None:
                    item_record = models.ClaimChecklistItemRecord(id=item.id, checklist_id=checklist_id)
                item_record.position = position
                item_record.title = item.title
                item_record.completed = item.completed
                item_record.notes = item.notes
                kept.append(item_record)
            checklist_record.items = kept
            record.last_updated = stamp(record.last_updated)
            session.commit()
            return ClaimChecklist(id=checklist_id, type=existing.type, items=parsed)

    async def find_or_create_client(
        self, client_name: str, email: str, client_code: Optional[str] = None
    ) -> Client:
        normalized = (email or "").strip().lower()
        if not normalized:
            raise ValidationError("El email del cliente es obligatorio")
        return await self._write(
            "client_find_or_create",
            "No se pudo registrar el cliente",
            self._find_or_create_client_sync,
            client_name.strip() or normalized,
            normalized,
            client_code,
        )

    def _find_or_create_client_sync(self, client_name: str, email: str, client_code: Optional[str]) -> Client:
        with self._session_factory() as session:
            existing = session.scalars(
                select(models.ClientRecord).where(func.lower(models.ClientRecord.email) == email)
            ).first()
            if existing is not None:
                return client_from_row(_columns(existing))
            code = client_code or generate_client_code()
            while session.scalars(select(models.ClientRecord.id).where(models.ClientRecord.client_code == code)).first():
                code = generate_client_code()
            client = Client(id=new_id(), client_code=code, client_name=client_name, email=email)
            session.add(models.ClientRecord(**client_to_row(client)))
            session.commit()
            logger.info("action=client_create mode=remote client_code=%s", code)
            return client

    @staticmethod
    def _get_claim_record(session: Session, claim_id: str) -> Any:
        record = session.get(models.ClaimRecord, claim_id)
        if record is None:
            raise NotFoundError(f"Reclamo {claim_id} no encontrado")
        return record


def build_claim_store(
    settings: Any,
    *,
    session_factory: Optional[Callable[[], Session]] = None,
    kv: Optional[LocalKeyValueStore] = None,
) -> ClaimStore:
    """Elige el almacén una sola vez según la configuración."""
    kv = kv or LocalKeyValueStore(settings.fallback.data_dir)
    cache = LocalFallbackCache(kv)
    workflow = StatusWorkflow(settings.workflow.transitions)
    max_upload = settings.storage.max_upload_bytes
    if session_factory is None and not settings.database.configured:
        logger.info("action=claim_store_mode mode=local reason=database_not_configured")
        return LocalClaimStore(cache, workflow=workflow, max_upload_bytes=max_upload)
    if session_factory is None:
        from db.session import get_sessionmaker

        session_factory = get_sessionmaker(settings.database.url)
    logger.info("action=claim_store_mode mode=remote")
    return DatabaseClaimStore(
        session_factory,
        cache,
        uploads=UploadStorage(settings.storage.uploads_dir, settings.storage.public_base_url),
        workflow=workflow,
        max_upload_bytes=max_upload,
    )

__all__ = [
    "ClaimStore",
    "DatabaseClaimStore",
    "LocalClaimStore",
    "MAX_UPLOAD_BYTES",
    "UploadStorage",
    "UploadedFile",
    "build_claim_store",
    "build_communication",
    "build_document_reference",
    "build_new_claim",
    "document_kind",
    "resolve_update",
    "stamp",
]
