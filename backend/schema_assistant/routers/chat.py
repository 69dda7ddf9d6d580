"""Chat session routes."""

from fastapi import APIRouter, Depends, HTTPException

from schema_assistant.db.dependencies import get_chat_session
from schema_assistant.routers.suggestions import build_apply_response
from schema_assistant.schemas.chat import (
    AIConfigRead,
    AIConfigUpdate,
    ChatApplyRequest,
    ChatRetryRequest,
    ChatSessionView,
    ChatTurnRequest,
    ChatTurnResult,
    ConnectionTestResult,
    HistoryExport,
    HistoryImportRequest,
)
from schema_assistant.schemas.common import ApiResponse
from schema_assistant.schemas.suggestions import ApplyResponse
from schema_assistant.services.chat_session import ChatSession, ChatSessionError
from schema_assistant.services.diagram_editor import InMemoryDiagramEditor

router = APIRouter(prefix="/chat")

_BUSY_DETAIL = "A chat request is already in flight."
_ERROR_STATUS = {"request-error": 400, "server-error": 502, "network-error": 504}


@router.get("/messages", response_model=ApiResponse[ChatSessionView])
def get_chat_messages(session: ChatSession = Depends(get_chat_session)) -> ApiResponse[ChatSessionView]:
    return ApiResponse(data=session.view())


@router.delete("/messages", response_model=ApiResponse[ChatSessionView])
def clear_chat_messages(session: ChatSession = Depends(get_chat_session)) -> ApiResponse[ChatSessionView]:
    session.clear_history()
    return ApiResponse(data=session.view())


@router.get("/messages/export", response_model=ApiResponse[HistoryExport])
def export_chat_messages(session: ChatSession = Depends(get_chat_session)) -> ApiResponse[HistoryExport]:
    return ApiResponse(data=HistoryExport(content=session.export_history(), message_count=len(session.messages)))


@router.post("/messages/import", response_model=ApiResponse[ChatSessionView])
def import_chat_messages(
    payload: HistoryImportRequest,
    session: ChatSession = Depends(get_chat_session),
) -> ApiResponse[ChatSessionView]:
    """Replace the conversation log with an exported one."""

    source = payload.content if payload.content is not None else payload.messages
    if source is None:
        raise HTTPException(status_code=422, detail="Provide either content or messages.")
    try:
        session.import_history(source)
    except ChatSessionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ApiResponse(data=session.view())


@router.post("/turn", response_model=ApiResponse[ChatTurnResult])
def create_chat_turn(
    payload: ChatTurnRequest,
    session: ChatSession = Depends(get_chat_session),
) -> ApiResponse[ChatTurnResult]:
    """Append a user message and return the assistant reply."""

    try:
        result = session.send(payload.content, payload.diagram)
    except ChatSessionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ApiResponse(data=_checked_turn(result))


@router.post("/retry", response_model=ApiResponse[ChatTurnResult])
def retry_chat_turn(
    payload: ChatRetryRequest,
    session: ChatSession = Depends(get_chat_session),
) -> ApiResponse[ChatTurnResult]:
    try:
        result = session.retry(payload.diagram)
    except ChatSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ApiResponse(data=_checked_turn(result))


@router.post("/apply", response_model=ApiResponse[ApplyResponse])
def apply_chat_suggestions(
    payload: ChatApplyRequest,
    session: ChatSession = Depends(get_chat_session),
) -> ApiResponse[ApplyResponse]:
    """Apply suggestions found in an assistant message and log a summary."""

    editor = InMemoryDiagramEditor(payload.diagram)
    outcome = session.apply_suggestions(payload.content, editor)
    return ApiResponse(data=build_apply_response(outcome.result, editor, outcome.messages))


@router.get("/config", response_model=ApiResponse[AIConfigRead])
def get_chat_config(session: ChatSession = Depends(get_chat_session)) -> ApiResponse[AIConfigRead]:
    return ApiResponse(data=AIConfigRead.from_config(session.config))


@router.put("/config", response_model=ApiResponse[AIConfigRead])
def update_chat_config(
    payload: AIConfigUpdate,
    session: ChatSession = Depends(get_chat_session),
) -> ApiResponse[AIConfigRead]:
    return ApiResponse(data=AIConfigRead.from_config(session.update_config(payload)))


@router.post("/config/test", response_model=ApiResponse[ConnectionTestResult])
def test_chat_connection(session: ChatSession = Depends(get_chat_session)) -> ApiResponse[ConnectionTestResult]:
    """Probe the configured endpoint."""

    return ApiResponse(data=session.test_connection())


def _checked_turn(result: ChatTurnResult | None) -> ChatTurnResult:
    if result is None:
        raise HTTPException(status_code=409, detail=_BUSY_DETAIL)
    if result.error is not None and result.error_code in _ERROR_STATUS:
        raise HTTPException(status_code=_ERROR_STATUS[result.error_code], detail=result.error)
    return result
