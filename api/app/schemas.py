# Nombre de archivo: schemas.py
# Ubicación de archivo: api/app/schemas.py
# Descripción: Modelos Pydantic de entrada de la API (camelCase en el cuerpo JSON)

"""Esquemas de entrada.

Los cuerpos JSON llegan en camelCase (como los consume el frontend) y se
vuelcan con ``model_dump(exclude_unset=True)`` en snake_case, que es lo que
esperan los almacenes. Las respuestas se arman con ``core.claims.mapping``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ProductIn(CamelModel):
    description: str
    style: str = ""
    color: str = ""
    quantity: int = Field(ge=0)
    claimed_quantity: Optional[int] = Field(default=None, ge=0)
    price_per_unit: float = Field(default=0, ge=0, alias="pricePerSY")


class ClaimCreate(CamelModel):
    client_name: str
    client_id: str
    claim_number: Optional[str] = None
    creation_date: Optional[datetime] = None
    status: Optional[str] = None
    department: str = ""
    installed: bool = False
    installation_date: Optional[datetime] = None
    identified_cause: Optional[str] = None
    invoice_link: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    claimed_amount: float = 0
    products: List[ProductIn] = Field(default_factory=list)


class ClaimUpdate(CamelModel):
    """Actualización parcial: solo viajan los campos informados."""

    claim_number: Optional[str] = None
    client_name: Optional[str] = None
    client_id: Optional[str] = None
    status: Optional[str] = None
    department: Optional[str] = None
    installed: Optional[bool] = None
    installation_date: Optional[datetime] = None
    identified_cause: Optional[str] = None
    invoice_link: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    claimed_amount: Optional[float] = None
    solution_amount: Optional[float] = None
    saved_amount: Optional[float] = None


class CommunicationIn(CamelModel):
    type: str = "note"
    content: str
    sender: str
    subject: Optional[str] = None
    date: Optional[datetime] = None
    recipients: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)


class ChecklistCreate(CamelModel):
    type: str


class ChecklistItemIn(CamelModel):
    id: Optional[str] = None
    title: str = ""
    completed: bool = False
    notes: Optional[str] = None


class ChecklistUpdate(CamelModel):
    items: List[ChecklistItemIn]


class LoginRequest(CamelModel):
    email: str
    password: str


class ChatRequest(CamelModel):
    message: str
    session_id: Optional[str] = None


class AlertCreate(CamelModel):
    message: str
    type: str = "info"
    claim_id: Optional[str] = None
    user_id: Optional[str] = None


class EmailAttachmentIn(CamelModel):
    name: str
    content_type: str = ""
    content_url: Optional[str] = None


class EmailWebhookPayload(CamelModel):
    """Correo reenviado por la automatización (Power Automate u otra)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    subject: str = ""
    body: str = ""
    sender: str = ""
    recipients: List[str] = Field(default_factory=list)
    received_time: Optional[datetime] = None
    has_attachments: bool = False
    attachments: List[EmailAttachmentIn] = Field(default_factory=list)


__all__ = [
    "AlertCreate",
    "ChatRequest",
    "ChecklistCreate",
    "ChecklistUpdate",
    "ClaimCreate",
    "ClaimUpdate",
    "CommunicationIn",
    "EmailWebhookPayload",
    "LoginRequest",
    "ProductIn",
]
