# Nombre de archivo: workflow.py
# Ubicación de archivo: core/claims/workflow.py
# Descripción: Política configurable de transiciones entre estados de reclamo

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from core.errors import ValidationError

from .models import ClaimStatus

logger = logging.getLogger(__name__)


class StatusWorkflow:
    """Tabla de transiciones permitidas.

    Sin tabla configurada se admite cualquier salto, incluido volver a un
    estado anterior. Con tabla, un estado ausente como origen solo puede
    mantenerse en sí mismo.
    """

    def __init__(self, transitions: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._table: Optional[Dict[ClaimStatus, frozenset[ClaimStatus]]] = None
        if transitions:
            table: Dict[ClaimStatus, frozenset[ClaimStatus]] = {}
            for origin, targets in transitions.items():
                table[_status(origin)] = frozenset(_status(t) for t in targets)
            self._table = table

    @property
    def restricted(self) -> bool:
        return self._table is not None

    def allowed_targets(self, current: ClaimStatus) -> list[ClaimStatus]:
        if self._table is None:
            return ClaimStatus.ordered()
        targets = self._table.get(current, frozenset())
        return [s for s in ClaimStatus.ordered() if s in targets or s is current]

    def can_transition(self, current: ClaimStatus, target: ClaimStatus) -> bool:
        if current is target or self._table is None:
            return True
        return target in self._table.get(current, frozenset())

    def check(self, current: ClaimStatus, target: ClaimStatus | str) -> ClaimStatus:
        """Valida la transición y devuelve el estado destino normalizado."""
        target_status = _status(target)
        if not self.can_transition(current, target_status):
            logger.info(
                "action=status_transition_rejected from=%s to=%s",
                current.value,
                target_status.value,
            )
            raise ValidationError(
                f"Transición de estado no permitida: {current.value} → {target_status.value}"
            )
        return target_status


def _status(value: ClaimStatus | str) -> ClaimStatus:
    if isinstance(value, ClaimStatus):
        return value
    try:
        return ClaimStatus(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Estado desconocido: {value}") from exc


def parse_status(value: ClaimStatus | str) -> ClaimStatus:
    return _status(value)


__all__ = ["StatusWorkflow", "parse_status"]
