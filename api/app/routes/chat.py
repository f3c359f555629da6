# Nombre de archivo: chat.py
# Ubicación de archivo: api/app/routes/chat.py
# Descripción: Endpoints del asistente de reclamos (mensajes y sesiones)

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.app.schemas import ChatRequest
from api.app.services import AppServices, get_services, require_user
from core.claims.mapping import entity_to_json

router = APIRouter(prefix="/api/chat", tags=["chat"], dependencies=[Depends(require_user)])


@router.post("")
async def send_message(
    payload: ChatRequest,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    reply = await services.chat.send_message(payload.message, payload.session_id, user["id"])
    return {
        "response": reply.response,
        "sessionId": reply.session_id,
        "relevantDocs": [
            {"content": doc.content, "metadata": doc.metadata, "similarity": doc.similarity}
            for doc in reply.relevant_docs
        ],
    }


@router.get("/sessions")
async def list_sessions(
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    sessions = await services.chat.get_sessions(user["id"])
    return [
        {
            "id": session.id,
            "title": session.title,
            "createdAt": session.created_at.isoformat(),
            "updatedAt": session.updated_at.isoformat(),
        }
        for session in sessions
    ]


@router.get("/sessions/{session_id}/messages")
async def list_messages(
    session_id: str,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    messages = await services.chat.get_session_messages(session_id, user["id"])
    return [entity_to_json(message) for message in messages]


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    services: AppServices = Depends(get_services),
    user: Dict[str, Any] = Depends(require_user),
):
    await services.chat.delete_session(session_id, user["id"])
    return {"success": True}
