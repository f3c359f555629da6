# Nombre de archivo: models.py
# Ubicación de archivo: core/claims/models.py
# Descripción: Entidades de dominio (reclamos, productos, documentos, comunicaciones, checklists, alertas)

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

DocumentKind = Literal["image", "document", "email"]
CommunicationKind = Literal["email", "call", "meeting", "note"]
AlertSeverity = Literal["warning", "info", "error"]
ChatRole = Literal["user", "assistant"]

FINANCIAL_FIELDS = ("claimed_amount", "solution_amount")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


def generate_claim_number(now: datetime | None = None) -> str:
    """Número visible `CLM-<año>-<4 dígitos>` (la unicidad no se verifica acá)."""
    year = (now or utcnow()).year
    return f"CLM-{year}-{random.randint(0, 9999):04d}"


def generate_client_code() -> str:
    return f"C{random.randint(0, 9999):04d}"


class ClaimStatus(str, Enum):
    """Estados del reclamo en orden de avance del workflow."""

    NEW = "New"
    SCREENING = "Screening"
    ANALYZING = "Analyzing"
    NEGOTIATION = "Negotiation"
    ACCEPTED = "Accepted"
    CLOSED = "Closed"

    @classmethod
    def ordered(cls) -> list["ClaimStatus"]:
        return list(cls)

    @property
    def rank(self) -> int:
        return ClaimStatus.ordered().index(self)


@dataclass(slots=True)
class ClaimProduct:
    id: str
    description: str
    style: str
    color: str
    quantity: int
    claimed_quantity: int
    price_per_unit: float
    total_price: float

    @classmethod
    def create(
        cls,
        description: str,
        style: str,
        color: str,
        quantity: int,
        price_per_unit: float,
        claimed_quantity: int | None = None,
        id: str | None = None,
    ) -> "ClaimProduct":
        # total_price se fija al crear; las ediciones posteriores no lo recalculan
        return cls(
            id=id or new_id("p-"),
            description=description,
            style=style,
            color=color,
            quantity=quantity,
            claimed_quantity=quantity if claimed_quantity is None else claimed_quantity,
            price_per_unit=price_per_unit,
            total_price=quantity * price_per_unit,
        )


@dataclass(slots=True)
class ClaimDocument:
    id: str
    name: str
    kind: DocumentKind
    url: str
    upload_date: datetime
    category: Optional[str] = None
    uploaded_by: Optional[str] = None


@dataclass(slots=True)
class ClaimCommunication:
    id: str
    date: datetime
    kind: CommunicationKind
    content: str
    sender: str
    subject: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    attachments: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ClaimChecklistItem:
    id: str
    title: str
    completed: bool = False
    notes: Optional[str] = None


@dataclass(slots=True)
class ClaimChecklist:
    id: str
    type: str
    items: List[ClaimChecklistItem] = field(default_factory=list)

    @property
    def progress(self) -> int:
        """Porcentaje de ítems completos (0 para una checklist vacía)."""
        if not self.items:
            return 0
        completed = sum(1 for item in self.items if item.completed)
        return round(completed / len(self.items) * 100)


@dataclass(slots=True)
class Claim:
    """Reclamo de un cliente sobre un producto, con finanzas e historial."""

    id: str
    claim_number: str
    client_name: str
    client_id: str
    creation_date: datetime
    status: ClaimStatus
    department: str
    installed: bool
    solution_amount: float
    claimed_amount: float
    saved_amount: float
    last_updated: datetime
    identified_cause: Optional[str] = None
    installation_date: Optional[datetime] = None
    invoice_link: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    products: List[ClaimProduct] = field(default_factory=list)
    documents: List[ClaimDocument] = field(default_factory=list)
    communications: List[ClaimCommunication] = field(default_factory=list)
    checklists: List[ClaimChecklist] = field(default_factory=list)

    def matches(self, term: str) -> bool:
        needle = term.strip().lower()
        if not needle:
            return True
        haystack = (
            self.claim_number,
            self.client_name,
            self.client_id,
            self.description or "",
            self.department,
        )
        return any(needle in value.lower() for value in haystack)


@dataclass(slots=True)
class ClaimTotals:
    solution: float
    claimed: float
    saved: float


@dataclass(slots=True)
class Client:
    id: str
    client_code: str
    client_name: str
    email: str


@dataclass(slots=True)
class Alert:
    id: str
    message: str
    severity: AlertSeverity
    read: bool
    created_at: datetime
    user_id: Optional[str] = None
    claim_id: Optional[str] = None
    claim_number: Optional[str] = None


@dataclass(slots=True)
class AuthUser:
    id: str
    email: str
    role: str
    full_name: str
    avatar_url: Optional[str] = None


def compute_saved_amount(claimed_amount: float, solution_amount: float) -> float:
    return claimed_amount - solution_amount


__all__ = [
    "Alert",
    "AuthUser",
    "Claim",
    "ClaimChecklist",
    "ClaimChecklistItem",
    "ClaimCommunication",
    "ClaimDocument",
    "ClaimProduct",
    "ClaimStatus",
    "ClaimTotals",
    "Client",
    "FINANCIAL_FIELDS",
    "compute_saved_amount",
    "generate_claim_number",
    "generate_client_code",
    "new_id",
    "utcnow",
]
