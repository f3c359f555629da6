# Nombre de archivo: claims.py
# Ubicación de archivo: api/app/routes/claims.py
# Descripción: Endpoints CRUD de reclamos, documentos, comunicaciones y checklists
"""Rutas de reclamos.

Los listados y totales se sirven desde el contexto en memoria del usuario
(:class:`core.claims.ClaimsContext`); las escrituras pasan por el contexto
cuando éste mantiene una copia optimista y por el almacén en el resto de los
casos.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.app.schemas import ChecklistCreate, ChecklistUpdate, ClaimCreate, ClaimUpdate, CommunicationIn
from api.app.services import AppServices, get_services, require_user
from core.claims import UploadedFile
from core.claims.mapping import claim_to_json, entity_to_json
from core.errors import NotFoundError

router = APIRouter(prefix="/api/claims", tags=["claims"], dependencies=[Depends(require_user)])


def _checklist_json(checklist) -> Dict[str, Any]:
    data = entity_to_json(checklist)
    data["progress"] = checklist.progress
    return data


@router.get("")
async def list_claims(
    status: Optional[str] = None,
    department: Optional[str] = None,
    cause: Optional[str] = None,
    installed: Optional[bool] = None,
    sort: str = "creation_date",
    descending: bool = True,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    context = await services.context_for(user["id"])
    claims = context.filter(status=status, department=department, cause=cause, installed=installed)
    return [claim_to_json(claim) for claim in context.sort(sort, descending, claims)]


@router.get("/search")
async def search_claims(q: str = Query(default=""), services: AppServices = Depends(get_services)):
    return [claim_to_json(claim) for claim in await services.claims.search(q)]


@router.get("/totals")
async def claim_totals(
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    context = await services.context_for(user["id"])
    return entity_to_json(context.calculate_totals())


@router.get("/stats")
async def claim_stats(
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    context = await services.context_for(user["id"])
    stats = context.dashboard_stats()
    return {
        "total": stats.total,
        "open": stats.open,
        "byStatus": stats.by_status,
        "totals": entity_to_json(stats.totals),
    }


@router.get("/{claim_id}")
async def get_claim(claim_id: str, services: AppServices = Depends(get_services)):
    claim = await services.claims.fetch_one(claim_id)
    if claim is None:
        raise NotFoundError(f"Reclamo {claim_id} no encontrado")
    return claim_to_json(claim)


@router.post("", status_code=201)
async def create_claim(
    payload: ClaimCreate,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    context = await services.context_for(user["id"])
    claim_id = await context.add(payload.model_dump(exclude_unset=True))
    claim = context.find(claim_id) or await services.claims.fetch_one(claim_id)
    return {"id": claim_id, "claim": claim_to_json(claim) if claim else None}


@router.patch("/{claim_id}")
async def update_claim(
    claim_id: str,
    payload: ClaimUpdate,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    context = await services.context_for(user["id"])
    await context.update(claim_id, payload.model_dump(exclude_unset=True))
    claim = context.find(claim_id) or await services.claims.fetch_one(claim_id)
    return claim_to_json(claim) if claim else {"id": claim_id}


@router.delete("/{claim_id}")
async def delete_claim(
    claim_id: str,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    await services.claims.delete(claim_id)
    context = services.contexts.get(user["id"])
    if context is not None:
        await context.refresh()
    return {"success": True}


@router.post("/{claim_id}/documents", status_code=201)
async def upload_document(
    claim_id: str,
    file: UploadFile = File(...),
    category: Optional[str] = Form(default=None),
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    upload = UploadedFile(
        filename=file.filename or "",
        content=await file.read(),
        content_type=file.content_type,
    )
    context = await services.context_for(user["id"])
    document = await context.upload_document(claim_id, upload, category, user.get("email"))
    return entity_to_json(document)


@router.post("/{claim_id}/communications", status_code=201)
async def add_communication(claim_id: str, payload: CommunicationIn, services: AppServices = Depends(get_services)):
    communication = await services.claims.add_communication(claim_id, payload.model_dump())
    return entity_to_json(communication)


@router.post("/{claim_id}/checklists", status_code=201)
async def add_checklist(claim_id: str, payload: ChecklistCreate, services: AppServices = Depends(get_services)):
    checklist = await services.claims.add_checklist(claim_id, payload.type)
    return _checklist_json(checklist)


@router.put("/{claim_id}/checklists/{checklist_id}")
async def update_checklist(
    claim_id: str,
    checklist_id: str,
    payload: ChecklistUpdate,
    services: AppServices = Depends(get_services),
):
    items = [item.model_dump() for item in payload.items]
    checklist = await services.claims.update_checklist(claim_id, checklist_id, items)
    return _checklist_json(checklist)
