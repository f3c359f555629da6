# Nombre de archivo: email_webhook.py
# Ubicación de archivo: api/app/routes/email_webhook.py
# Descripción: Webhook que recibe correos reenviados y los convierte en reclamos
"""Webhook de correos entrantes.

Responde siempre con ``{success, message}``: los correos sin la etiqueta de
reclamo devuelven 200 con ``success=false`` y los fallos de alta se informan con
el código de estado del error.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.app.schemas import EmailWebhookPayload
from api.app.services import AppServices, get_services
from core.errors import ClaimsAppError
from core.services.email_intake import EmailAttachment, IncomingEmail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["email"])


@router.post("/email-webhook")
async def email_webhook(payload: EmailWebhookPayload, services: AppServices = Depends(get_services)):
    email = IncomingEmail(
        subject=payload.subject,
        body=payload.body,
        sender=payload.sender,
        recipients=payload.recipients,
        received_time=payload.received_time,
        has_attachments=payload.has_attachments,
        attachments=[
            EmailAttachment(name=item.name, content_type=item.content_type, content_url=item.content_url)
            for item in payload.attachments
        ],
    )
    try:
        result = await services.intake.process(email)
    except ClaimsAppError as exc:
        logger.error("action=email_webhook error=%s detail=%s", exc.code, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.user_message},
        )
    if not result.success:
        return {"success": False, "message": result.message}
    return {"success": True, "claimNumber": result.claim_number, "message": result.message}
