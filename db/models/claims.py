# Nombre de archivo: claims.py
# Ubicación de archivo: db/models/claims.py
# Descripción: Modelos SQLAlchemy de reclamos, colecciones hijas, clientes y alertas

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from db.base import Base

_SCHEMA = {"schema": "app"}


class ClaimRecord(Base):
    __tablename__ = "claims"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    claim_number = Column(String(32), nullable=False, index=True)
    client_name = Column(String(255), nullable=False, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    creation_date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(32), nullable=False, index=True)
    department = Column(String(128), nullable=False, default="")
    identified_cause = Column(String(255), nullable=True)
    installed = Column(Boolean, nullable=False, default=False)
    installation_date = Column(DateTime(timezone=True), nullable=True)
    invoice_link = Column(String(255), nullable=True)
    solution_amount = Column(Numeric(14, 2), nullable=False, default=0)
    claimed_amount = Column(Numeric(14, 2), nullable=False, default=0)
    saved_amount = Column(Numeric(14, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    assigned_to = Column(String(255), nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False)

    products = relationship(
        "ClaimProductRecord", cascade="all, delete-orphan", passive_deletes=True, order_by="ClaimProductRecord.id"
    )
    documents = relationship(
        "ClaimDocumentRecord",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ClaimDocumentRecord.upload_date",
    )
    communications = relationship(
        "ClaimCommunicationRecord",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ClaimCommunicationRecord.date",
    )
    checklists = relationship(
        "ClaimChecklistRecord", cascade="all, delete-orphan", passive_deletes=True, order_by="ClaimChecklistRecord.id"
    )


class ClaimProductRecord(Base):
    __tablename__ = "claim_products"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    claim_id = Column(String(64), ForeignKey("app.claims.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    style = Column(String(128), nullable=False, default="")
    color = Column(String(128), nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=0)
    claimed_quantity = Column(Integer, nullable=False, default=0)
    price_per_sy = Column(Numeric(14, 2), nullable=False, default=0)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)


class ClaimDocumentRecord(Base):
    __tablename__ = "claim_documents"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    claim_id = Column(String(64), ForeignKey("app.claims.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False)
    url = Column(Text, nullable=False)
    upload_date = Column(DateTime(timezone=True), nullable=False)
    category = Column(String(128), nullable=True)
    uploaded_by = Column(String(255), nullable=True)


class ClaimCommunicationRecord(Base):
    __tablename__ = "claim_communications"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    claim_id = Column(String(64), ForeignKey("app.claims.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    type = Column(String(16), nullable=False)
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    sender = Column(String(255), nullable=False)
    recipients = Column(JSONB, nullable=True)
    attachments = Column(JSONB, nullable=True)


class ClaimChecklistRecord(Base):
    __tablename__ = "claim_checklists"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    claim_id = Column(String(64), ForeignKey("app.claims.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(128), nullable=False)

    items = relationship(
        "ClaimChecklistItemRecord",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ClaimChecklistItemRecord.position",
    )


class ClaimChecklistItemRecord(Base):
    __tablename__ = "claim_checklist_items"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    checklist_id = Column(
        String(64), ForeignKey("app.claim_checklists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    title = Column(String(255), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)


class ClientRecord(Base):
    __tablename__ = "clients"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    client_code = Column(String(16), nullable=False, unique=True)
    client_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)


class AlertRecord(Base):
    __tablename__ = "alerts"
    __table_args__ = _SCHEMA

    id = Column(String(64), primary_key=True)
    user_id = Column(String(255), nullable=True, index=True)
    claim_id = Column(String(64), ForeignKey("app.claims.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=False)
    type = Column(String(16), nullable=False, default="info")
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    claim = relationship("ClaimRecord", lazy="joined")


__all__ = [
    "AlertRecord",
    "ClaimChecklistItemRecord",
    "ClaimChecklistRecord",
    "ClaimCommunicationRecord",
    "ClaimDocumentRecord",
    "ClaimProductRecord",
    "ClaimRecord",
    "ClientRecord",
]
