"""Diagram context routes."""

from fastapi import APIRouter

from schema_assistant.schemas.common import ApiResponse
from schema_assistant.schemas.diagram import DiagramState
from schema_assistant.schemas.suggestions import ContextResponse
from schema_assistant.services.context_builder import build_context_summary, build_diagram_context

router = APIRouter(prefix="/diagram")


@router.post("/context", response_model=ApiResponse[ContextResponse])
def create_diagram_context(payload: DiagramState) -> ApiResponse[ContextResponse]:
    """Project a diagram into the context sent to the assistant."""

    context = build_diagram_context(payload)
    return ApiResponse(data=ContextResponse(context=context, summary=build_context_summary(context)))
