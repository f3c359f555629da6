# Nombre de archivo: context.py
# Ubicación de archivo: core/claims/context.py
# Descripción: Contexto agregado en memoria de reclamos con actualizaciones optimistas

"""Fuente de verdad en memoria de los reclamos de una sesión de usuario.

El contexto delega la persistencia en un :class:`~core.claims.store.ClaimStore`
y aplica las actualizaciones sobre su copia local sin esperar una recarga. Dos
``update`` concurrentes sobre el mismo reclamo no se coordinan: gana la última
en completarse. Tras :meth:`ClaimsContext.deactivate` los resultados que
lleguen de llamadas en vuelo se descartan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from core.errors import ClaimsAppError, ValidationError

from .models import AuthUser, Claim, ClaimDocument, ClaimStatus, ClaimTotals
from .store import ClaimStore, UploadedFile, apply_changes, resolve_update, stamp
from .workflow import StatusWorkflow, parse_status

_SORT_KEYS = {
    "claim_number": lambda claim: claim.claim_number,
    "client_name": lambda claim: claim.client_name.lower(),
    "creation_date": lambda claim: claim.creation_date,
    "last_updated": lambda claim: claim.last_updated,
    "status": lambda claim: claim.status.rank,
    "department": lambda claim: claim.department.lower(),
    "claimed_amount": lambda claim: claim.claimed_amount,
    "solution_amount": lambda claim: claim.solution_amount,
    "saved_amount": lambda claim: claim.saved_amount,
}


@dataclass(slots=True)
class DashboardStats:
    total: int
    open: int
    by_status: Dict[str, int] = field(default_factory=dict)
    totals: ClaimTotals = field(default_factory=lambda: ClaimTotals(0.0, 0.0, 0.0))


class ClaimsContext:
    """Lista de reclamos compartida por las vistas de un usuario."""

    def __init__(self, store: ClaimStore, logger: Optional[logging.Logger] = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger(__name__)
        self._merge_policy = StatusWorkflow()
        self._generation = 0
        self._active = False
        self._user_id: Optional[str] = None
        self.claims: List[Claim] = []
        self.loading = False
        self.error: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def _current(self, generation: int) -> bool:
        return self._active and generation == self._generation

    async def activate(self, user: AuthUser | str | None) -> None:
        """Carga la lista al activarse o cuando cambia la identidad."""
        identity = user.id if isinstance(user, AuthUser) else user
        if self._active and identity == self._user_id:
            return
        self._generation += 1
        self._active = True
        self._user_id = identity
        if identity is None:
            self.claims = []
            return
        await self.refresh()

    def deactivate(self) -> None:
        self._active = False
        self._generation += 1

    async def refresh(self) -> None:
        if not self._active or self._user_id is None:
            return
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            claims = await self._store.fetch_all()
        except (ClaimsAppError, OSError) as exc:
            self._logger.warning("action=claims_refresh error=%s", exc)
            if self._current(generation):
                self.error = "No se pudieron cargar los reclamos"
                self.loading = False
            return
        if self._current(generation):
            self.claims = claims
            self.loading = False

    async def add(self, data: Mapping[str, Any]) -> str:
        claim_id = await self._store.create(data)
        await self.refresh()
        return claim_id

    async def update(self, claim_id: str, updates: Mapping[str, Any]) -> None:
        generation = self._generation
        await self._store.update(claim_id, updates)
        if not self._current(generation):
            return
        claim = self.find(claim_id)
        if claim is not None:
            apply_changes(claim, resolve_update(claim, updates, self._merge_policy))

    async def get_one(self, claim_id: str) -> Optional[Claim]:
        try:
            return await self._store.fetch_one(claim_id)
        except (ClaimsAppError, OSError) as exc:
            self._logger.warning("action=claims_get_one fallback=memory claim_id=%s error=%s", claim_id, exc)
            return self.find(claim_id)

    async def upload_document(
        self,
        claim_id: str,
        upload: UploadedFile,
        category: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> ClaimDocument:
        generation = self._generation
        document = await self._store.upload_document(claim_id, upload, category, uploaded_by)
        if self._current(generation):
            claim = self.find(claim_id)
            if claim is not None:
                claim.documents.append(document)
                claim.last_updated = stamp(claim.last_updated)
        return document

    def find(self, claim_id: str) -> Optional[Claim]:
        return next((claim for claim in self.claims if claim.id == claim_id), None)

    def calculate_totals(self) -> ClaimTotals:
        solution = sum(claim.solution_amount for claim in self.claims)
        claimed = sum(claim.claimed_amount for claim in self.claims)
        return ClaimTotals(solution=solution, claimed=claimed, saved=claimed - solution)

    def filter(
        self,
        *,
        status: ClaimStatus | str | None = None,
        department: Optional[str] = None,
        cause: Optional[str] = None,
        installed: Optional[bool] = None,
    ) -> List[Claim]:
        wanted = parse_status(status) if status else None
        result = []
        for claim in self.claims:
            if wanted is not None and claim.status is not wanted:
                continue
            if department and claim.department != department:
                continue
            if cause and (claim.identified_cause or "") != cause:
                continue
            if installed is not None and claim.installed != installed:
                continue
            result.append(claim)
        return result

    def sort(
        self,
        field_name: str = "creation_date",
        descending: bool = True,
        claims: Optional[List[Claim]] = None,
    ) -> List[Claim]:
        key = _SORT_KEYS.get(field_name)
        if key is None:
            raise ValidationError(f"Campo de orden no soportado: {field_name}")
        return sorted(self.claims if claims is None else claims, key=key, reverse=descending)

    def dashboard_stats(self) -> DashboardStats:
        by_status = {status.value: 0 for status in ClaimStatus.ordered()}
        for claim in self.claims:
            by_status[claim.status.value] += 1
        return DashboardStats(
            total=len(self.claims),
            open=sum(1 for claim in self.claims if claim.status is not ClaimStatus.CLOSED),
            by_status=by_status,
            totals=self.calculate_totals(),
        )


__all__ = ["ClaimsContext", "DashboardStats"]
