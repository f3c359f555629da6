# Nombre de archivo: alerts.py
# Ubicación de archivo: core/alerts.py
# Descripción: Alertas por usuario (lectura, marcado y creación) en base o archivo local

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol

import orjson
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.claims.cache import LocalFallbackCache, LocalKeyValueStore
from core.claims.mapping import alert_from_json, alert_from_row, alert_to_row, entity_to_json
from core.claims.models import Alert, new_id, utcnow
from core.errors import NotFoundError, StoreError, ValidationError
from db.models.claims import AlertRecord

logger = logging.getLogger(__name__)

ALERTS_KEY = "alerts"
SEVERITIES = ("warning", "info", "error")


class AlertStore(Protocol):
    async def fetch_alerts(self, user_id: Optional[str] = None) -> List[Alert]:
        """Alertas visibles para el usuario, más recientes primero."""

    async def mark_as_read(self, alert_id: str) -> None:
        ...

    async def mark_as_unread(self, alert_id: str) -> None:
        ...

    async def mark_all_as_read(self, user_id: Optional[str] = None) -> None:
        ...

    async def create_alert(
        self,
        message: str,
        severity: str = "info",
        *,
        user_id: Optional[str] = None,
        claim_id: Optional[str] = None,
    ) -> Alert:
        ...


def _new_alert(message: str, severity: str, user_id: Optional[str], claim_id: Optional[str]) -> Alert:
    if not (message or "").strip():
        raise ValidationError("La alerta necesita un mensaje")
    if severity not in SEVERITIES:
        raise ValidationError(f"Severidad inválida: {severity}")
    return Alert(
        id=new_id("al-"),
        message=message.strip(),
        severity=severity,  # type: ignore[arg-type]
        read=False,
        created_at=utcnow(),
        user_id=user_id,
        claim_id=claim_id,
    )


def _visible(alert: Alert, user_id: Optional[str]) -> bool:
    # Las alertas sin destinatario son para todos
    return user_id is None or alert.user_id in (None, user_id)


class LocalAlertStore:
    def __init__(self, kv: LocalKeyValueStore, claims: LocalFallbackCache) -> None:
        self._kv = kv
        self._claims = claims

    def _load(self) -> List[Alert]:
        try:
            raw = self._kv.read(ALERTS_KEY) or []
        except orjson.JSONDecodeError:
            logger.warning("action=alerts_load error=blob_corrupto")
            return []
        return [alert_from_json(item) for item in raw]

    def _save(self, alerts: List[Alert]) -> None:
        self._kv.write(ALERTS_KEY, [entity_to_json(alert) for alert in alerts])

    def _fetch_sync(self, user_id: Optional[str]) -> List[Alert]:
        alerts = [alert for alert in self._load() if _visible(alert, user_id)]
        numbers = {claim.id: claim.claim_number for claim in self._claims.load()}
        for alert in alerts:
            if alert.claim_id:
                alert.claim_number = numbers.get(alert.claim_id)
        return sorted(alerts, key=lambda alert: alert.created_at, reverse=True)

    def _set_read_sync(self, alert_id: str, read: bool) -> None:
        alerts = self._load()
        for alert in alerts:
            if alert.id == alert_id:
                alert.read = read
                self._save(alerts)
                return
        raise NotFoundError(f"Alerta {alert_id} no encontrada")

    def _mark_all_sync(self, user_id: Optional[str]) -> None:
        alerts = self._load()
        for alert in alerts:
            if _visible(alert, user_id):
                alert.read = True
        self._save(alerts)

    def _create_sync(self, alert: Alert) -> Alert:
        alerts = self._load()
        alerts.append(alert)
        self._save(alerts)
        return alert

    async def fetch_alerts(self, user_id: Optional[str] = None) -> List[Alert]:
        return await asyncio.to_thread(self._fetch_sync, user_id)

    async def mark_as_read(self, alert_id: str) -> None:
        await asyncio.to_thread(self._set_read_sync, alert_id, True)

    async def mark_as_unread(self, alert_id: str) -> None:
        await asyncio.to_thread(self._set_read_sync, alert_id, False)

    async def mark_all_as_read(self, user_id: Optional[str] = None) -> None:
        await asyncio.to_thread(self._mark_all_sync, user_id)

    async def create_alert(
        self,
        message: str,
        severity: str = "info",
        *,
        user_id: Optional[str] = None,
        claim_id: Optional[str] = None,
    ) -> Alert:
        alert = _new_alert(message, severity, user_id, claim_id)
        return await asyncio.to_thread(self._create_sync, alert)


class DatabaseAlertStore:
    """Alertas en `app.alerts`; el número de reclamo se resuelve por la relación con `app.claims`."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def _write(self, action: str, func_sync: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func_sync, *args)
        except SQLAlchemyError as exc:
            logger.error("action=%s error=%s", action, exc)
            raise StoreError("No se pudo actualizar las alertas", detail=str(exc)) from exc

    async def fetch_alerts(self, user_id: Optional[str] = None) -> List[Alert]:
        try:
            return await asyncio.to_thread(self._fetch_sync, user_id)
        except SQLAlchemyError as exc:
            logger.warning("action=alerts_fetch error=%s", exc)
            return []

    def _fetch_sync(self, user_id: Optional[str]) -> List[Alert]:
        stmt = select(AlertRecord).order_by(AlertRecord.created_at.desc())
        if user_id is not None:
            stmt = stmt.where(or_(AlertRecord.user_id == user_id, AlertRecord.user_id.is_(None)))
        with self._session_factory() as session:
            alerts = []
            for record in session.scalars(stmt).unique().all():
                row = {column.key: getattr(record, column.key) for column in AlertRecord.__table__.columns}
                row["claim_number"] = record.claim.claim_number if record.claim is not None else None
                alerts.append(alert_from_row(row))
            return alerts

    async def mark_as_read(self, alert_id: str) -> None:
        await self._write("alert_mark_read", self._set_read_sync, alert_id, True)

    async def mark_as_unread(self, alert_id: str) -> None:
        await self._write("alert_mark_unread", self._set_read_sync, alert_id, False)

    def _set_read_sync(self, alert_id: str, read: bool) -> None:
        with self._session_factory() as session:
            record = session.get(AlertRecord, alert_id)
            if record is None:
                raise NotFoundError(f"Alerta {alert_id} no encontrada")
            record.read = read
            session.commit()

    async def mark_all_as_read(self, user_id: Optional[str] = None) -> None:
        await self._write("alert_mark_all_read", self._mark_all_sync, user_id)

    def _mark_all_sync(self, user_id: Optional[str]) -> None:
        stmt = update(AlertRecord).values(read=True)
        if user_id is not None:
            stmt = stmt.where(or_(AlertRecord.user_id == user_id, AlertRecord.user_id.is_(None)))
        with self._session_factory() as session:
            session.execute(stmt)
            session.commit()

    async def create_alert(
        self,
        message: str,
        severity: str = "info",
        *,
        user_id: Optional[str] = None,
        claim_id: Optional[str] = None,
    ) -> Alert:
        alert = _new_alert(message, severity, user_id, claim_id)
        await self._write("alert_create", self._create_sync, alert)
        return alert

    def _create_sync(self, alert: Alert) -> None:
        with self._session_factory() as session:
            session.add(AlertRecord(**alert_to_row(alert)))
            session.commit()


def build_alert_store(
    kv: LocalKeyValueStore,
    claims: LocalFallbackCache,
    session_factory: Optional[Callable[[], Session]] = None,
) -> AlertStore:
    if session_factory is None:
        return LocalAlertStore(kv, claims)
    return DatabaseAlertStore(session_factory)


__all__ = ["AlertStore", "DatabaseAlertStore", "LocalAlertStore", "build_alert_store"]
