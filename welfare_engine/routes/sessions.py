"""
API routes for citizen sessions and their declared attributes
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..dependencies import get_sessions
from ..models.session import (
    AttributeWriteRequest,
    AttributeWriteResponse,
    CreateSessionRequest,
    CreateSessionResponse,
    SessionInfo,
    UserContext,
    WriteOutcome
)
from ..services.session_service import SessionContextStore

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=CreateSessionResponse, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    sessions: SessionContextStore = Depends(get_sessions)
):
    """
    Start a new session
    """
    session_id = await sessions.create_session(request.preferred_language)
    return CreateSessionResponse(session_id=session_id)


@router.get("/{session_id}", response_model=SessionInfo)
async def get_session(session_id: str, sessions: SessionContextStore = Depends(get_sessions)):
    """
    Get session metadata (no attribute values)
    """
    return await sessions.get_session_info(session_id)


@router.put("/{session_id}/attributes/{name}", response_model=AttributeWriteResponse)
async def set_attribute(
    session_id: str,
    name: str,
    request: AttributeWriteRequest,
    sessions: SessionContextStore = Depends(get_sessions)
):
    """
    Declare or update one attribute

    Sensitive attributes written without confirmation are not stored; the
    response is 202 with status ``requires_confirmation``.
    """
    outcome = await sessions.set_attribute(session_id, name, request.value, confirmed=request.confirmed)
    response = AttributeWriteResponse(session_id=session_id, attribute=name, status=outcome)
    if outcome == WriteOutcome.REQUIRES_CONFIRMATION:
        return JSONResponse(status_code=202, content=response.model_dump(mode="json"))
    return response


@router.get("/{session_id}/context", response_model=UserContext)
async def get_context(session_id: str, sessions: SessionContextStore = Depends(get_sessions)):
    """
    Get the attributes declared in a session
    """
    return await sessions.get_context(session_id)


@router.delete("/{session_id}", status_code=204)
async def end_session(session_id: str, sessions: SessionContextStore = Depends(get_sessions)):
    """
    End a session and erase everything it holds
    """
    await sessions.end_session(session_id)
