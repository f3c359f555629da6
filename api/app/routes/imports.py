# Nombre de archivo: imports.py
# Ubicación de archivo: api/app/routes/imports.py
# Descripción: Endpoints de importación masiva de reclamos y clientes desde planillas

from fastapi import APIRouter, Depends, File, UploadFile

from api.app.services import AppServices, get_services, require_user
from core.parsers.claims_import import ImportResult, import_claims, import_clients

router = APIRouter(prefix="/api/import", tags=["import"], dependencies=[Depends(require_user)])


def _result(result: ImportResult) -> dict:
    return {"success": result.success, "inserted": result.inserted, "errors": result.errors}


@router.post("/claims")
async def upload_claims(file: UploadFile = File(...), services: AppServices = Depends(get_services)):
    result = await import_claims(services.claims, file.filename or "", await file.read())
    return _result(result)


@router.post("/clients")
async def upload_clients(file: UploadFile = File(...), services: AppServices = Depends(get_services)):
    result = await import_clients(services.claims, file.filename or "", await file.read())
    return _result(result)
