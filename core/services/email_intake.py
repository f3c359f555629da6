# Nombre de archivo: email_intake.py
# Ubicación de archivo: core/services/email_intake.py
# Descripción: Alta de reclamos a partir de correos entrantes (webhook de automatización)

"""Conversión de correos en reclamos.

Solo se procesan los correos cuyo asunto contiene la etiqueta configurada
(por defecto ``[Réclamation]``). Por cada correo aceptado se resuelve o crea el
cliente por email, se crea el reclamo en estado ``New``, se registra el correo
como comunicación y cada adjunto como documento de referencia.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from core.alerts import AlertStore
from core.claims.store import ClaimStore, build_document_reference
from core.config import IntakeSettings
from core.errors import ClaimsAppError

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_NEWLINES_RE = re.compile(r"\r\n|\r|\n")
_EMAIL_RE = re.compile(r"<([^>]+)>")
DESCRIPTION_LENGTH = 500


@dataclass(slots=True)
class EmailAttachment:
    name: str
    content_type: str = ""
    content_url: Optional[str] = None


@dataclass(slots=True)
class IncomingEmail:
    subject: str
    body: str
    sender: str
    recipients: List[str] = field(default_factory=list)
    received_time: Optional[datetime] = None
    has_attachments: bool = False
    attachments: List[EmailAttachment] = field(default_factory=list)


@dataclass(slots=True)
class IntakeResult:
    success: bool
    message: str
    claim_number: Optional[str] = None
    claim_id: Optional[str] = None


def parse_sender(sender: str) -> tuple[str, str]:
    """Separa `Nombre <correo>`; sin ángulos, el remitente completo es el correo."""
    raw = (sender or "").strip()
    match = _EMAIL_RE.search(raw)
    email = match.group(1).strip() if match else raw
    name = raw.split("<")[0].strip().strip('"') or email
    return name, email


def summarize_body(body: str, limit: int = DESCRIPTION_LENGTH) -> str:
    text = _TAG_RE.sub("", body or "")
    text = _NEWLINES_RE.sub(" ", text).strip()
    return text[:limit]


class EmailIntakeService:
    def __init__(
        self,
        store: ClaimStore,
        settings: IntakeSettings,
        alerts: Optional[AlertStore] = None,
        logger_: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._alerts = alerts
        self._logger = logger_ or logger

    async def process(self, email: IncomingEmail) -> IntakeResult:
        if self._settings.subject_marker not in (email.subject or ""):
            self._logger.info("action=email_intake result=ignored subject=%r", email.subject)
            return IntakeResult(success=False, message="El correo no está identificado como reclamo")

        client_name, client_email = parse_sender(email.sender)
        client = await self._store.find_or_create_client(client_name, client_email)
        claim_id = await self._store.create(
            {
                "client_name": client.client_name,
                "client_id": client.client_code,
                "status": "New",
                "department": self._settings.default_department,
                "description": summarize_body(email.body),
                "claimed_amount": 0,
            }
        )
        claim = await self._store.fetch_one(claim_id)
        claim_number = claim.claim_number if claim else None

        # Comunicación y adjuntos no invalidan el alta ya realizada
        try:
            await self._store.add_communication(
                claim_id,
                {
                    "kind": "email",
                    "date": email.received_time,
                    "subject": email.subject,
                    "content": email.body or email.subject,
                    "sender": email.sender,
                    "recipients": email.recipients,
                    "attachments": [attachment.name for attachment in email.attachments],
                },
            )
        except ClaimsAppError as exc:
            self._logger.error("action=email_intake step=communication claim_id=%s error=%s", claim_id, exc)

        if email.has_attachments:
            for attachment in email.attachments:
                try:
                    await self._store.add_document(
                        claim_id,
                        build_document_reference(
                            attachment.name,
                            attachment.content_url,
                            content_type=attachment.content_type,
                            category=self._settings.attachment_category,
                        ),
                    )
                except ClaimsAppError as exc:
                    self._logger.error(
                        "action=email_intake step=attachment claim_id=%s name=%s error=%s",
                        claim_id,
                        attachment.name,
                        exc,
                    )

        if self._alerts is not None:
            try:
                await self._alerts.create_alert(
                    f"Nuevo reclamo recibido: {claim_number} - {client.client_name}",
                    "info",
                    claim_id=claim_id,
                )
            except ClaimsAppError as exc:
                self._logger.error("action=email_intake step=alert claim_id=%s error=%s", claim_id, exc)

        self._logger.info(
            "action=email_intake result=created claim_id=%s claim_number=%s client_code=%s",
            claim_id,
            claim_number,
            client.client_code,
        )
        return IntakeResult(
            success=True,
            message="Reclamo creado correctamente",
            claim_number=claim_number,
            claim_id=claim_id,
        )


__all__ = [
    "EmailAttachment",
    "EmailIntakeService",
    "IncomingEmail",
    "IntakeResult",
    "parse_sender",
    "summarize_body",
]
