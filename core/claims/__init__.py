# Nombre de archivo: __init__.py
# Ubicación de archivo: core/claims/__init__.py
# Descripción: Paquete de dominio y persistencia de reclamos

"""Entidades, almacenes y contexto agregado de reclamos."""

from .context import ClaimsContext
from .models import Claim, ClaimStatus, ClaimTotals
from .store import ClaimStore, DatabaseClaimStore, LocalClaimStore, UploadedFile, build_claim_store

__all__ = [
    "Claim",
    "ClaimStatus",
    "ClaimStore",
    "ClaimTotals",
    "ClaimsContext",
    "DatabaseClaimStore",
    "LocalClaimStore",
    "UploadedFile",
    "build_claim_store",
]
