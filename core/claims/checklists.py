# Nombre de archivo: checklists.py
# Ubicación de archivo: core/claims/checklists.py
# Descripción: Plantillas de checklists de análisis por tipo de reclamo

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from core.errors import ValidationError

from .models import ClaimChecklist, ClaimChecklistItem, new_id

CHECKLIST_TEMPLATES: Dict[str, tuple[str, ...]] = {
    "Défaut de Fabrication": (
        "Verificar lote y fecha de producción",
        "Solicitar muestra del material afectado",
        "Comparar contra especificación técnica",
        "Enviar muestra a laboratorio",
    ),
    "Problème d'Installation": (
        "Revisar condiciones del contrapiso",
        "Confirmar adhesivo y método de instalación",
        "Verificar tiempos de aclimatación",
        "Entrevistar al instalador",
    ),
    "Apparence/Performance": (
        "Registrar fotos del área afectada",
        "Medir tránsito estimado del sector",
        "Revisar plan de mantenimiento del cliente",
    ),
    "Dommage lors du Transport": (
        "Obtener remito firmado",
        "Fotografiar embalajes dañados",
        "Abrir reclamo con el transportista",
    ),
}


def build_checklist(checklist_type: str) -> ClaimChecklist:
    """Crea una checklist nueva a partir de la plantilla del tipo indicado.

    Un tipo sin plantilla genera una checklist vacía.
    """
    label = (checklist_type or "").strip()
    if not label:
        raise ValidationError("El tipo de checklist es obligatorio")
    items = [ClaimChecklistItem(id=new_id("ci-"), title=title) for title in CHECKLIST_TEMPLATES.get(label, ())]
    return ClaimChecklist(id=new_id("cl-"), type=label, items=items)


def parse_items(items: Iterable[Mapping[str, Any]], existing: Optional[ClaimChecklist] = None) -> List[ClaimChecklistItem]:
    """Normaliza los ítems recibidos; conserva el id cuando viene informado."""
    known = {item.id: item for item in existing.items} if existing else {}
    parsed: List[ClaimChecklistItem] = []
    for raw in items:
        title = str(raw.get("title") or "").strip()
        item_id = raw.get("id")
        if not title and item_id in known:
            title = known[item_id].title
        if not title:
            raise ValidationError("Cada ítem de checklist necesita un título")
        parsed.append(
            ClaimChecklistItem(
                id=str(item_id) if item_id else new_id("ci-"),
                title=title,
                completed=bool(raw.get("completed", False)),
                notes=raw.get("notes"),
            )
        )
    return parsed


__all__ = ["CHECKLIST_TEMPLATES", "build_checklist", "parse_items"]
