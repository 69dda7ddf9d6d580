"""Suggestion parsing, validation and apply routes."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from schema_assistant.extraction.response_parser import (
    ResponseParser,
    extract_table_definitions,
    generate_from_description,
)
from schema_assistant.extraction.types import SuggestionSet
from schema_assistant.extraction.validation import validate_table_suggestion
from schema_assistant.schemas.common import ApiResponse
from schema_assistant.schemas.message import ChatMessage
from schema_assistant.schemas.suggestions import (
    ApplyRequest,
    ApplyResponse,
    DescriptionRequest,
    ParseRequest,
    ParseResponse,
    ValidationResponse,
)
from schema_assistant.services.diagram_editor import InMemoryDiagramEditor
from schema_assistant.services.suggestion_applier import ApplyResult, SuggestionPayloadError, apply_suggestions

router = APIRouter(prefix="/suggestions")
_parser = ResponseParser()


@router.post("/parse", response_model=ApiResponse[ParseResponse])
def parse_suggestions(payload: ParseRequest) -> ApiResponse[ParseResponse]:
    return ApiResponse(
        data=ParseResponse(
            suggestions=_parser.parse(payload.content),
            table_definitions=[
                table.model_dump(by_alias=True) for table in extract_table_definitions(payload.content)
            ],
            actionable=_parser.has_actionable_suggestions(payload.content),
            general_advice=_parser.contains_general_advice(payload.content),
        )
    )


@router.post("/generate", response_model=ApiResponse[SuggestionSet])
def generate_suggestions(payload: DescriptionRequest) -> ApiResponse[SuggestionSet]:
    """Draft tables and relationships from a plain-language description."""

    return ApiResponse(data=generate_from_description(payload.description))


@router.post("/validate", response_model=ApiResponse[ValidationResponse])
def validate_suggestion(candidate: Any = Body(...)) -> ApiResponse[ValidationResponse]:
    """Validate one table candidate without applying it."""

    result = validate_table_suggestion(candidate)
    return ApiResponse(data=ValidationResponse(is_valid=result.is_valid, errors=result.errors))


@router.post("/apply", response_model=ApiResponse[ApplyResponse])
def apply_suggestion_set(payload: ApplyRequest) -> ApiResponse[ApplyResponse]:
    """Apply suggestions to the posted diagram and return the updated diagram."""

    editor = InMemoryDiagramEditor(payload.diagram)
    try:
        result = apply_suggestions(payload.suggestions, editor)
    except SuggestionPayloadError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ApiResponse(data=build_apply_response(result, editor))


def build_apply_response(
    result: ApplyResult,
    editor: InMemoryDiagramEditor,
    messages: list[ChatMessage] | None = None,
) -> ApplyResponse:
    return ApplyResponse(
        applied_count=result.applied_count,
        errors=result.errors,
        skipped_tables=result.skipped_tables,
        optimizations_applied=result.optimizations_applied,
        optimizations_unapplied=result.optimizations_unapplied,
        diagram=editor.snapshot(),
        undo_stack=[asdict(entry) for entry in editor.undo_stack],
        messages=list(messages or []),
    )
