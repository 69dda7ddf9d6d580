"""Schemas for parse/validate/apply suggestion endpoints."""

from typing import Any

from pydantic import Field

from schema_assistant.extraction.types import SuggestionSet
from schema_assistant.schemas.context import DiagramContext
from schema_assistant.schemas.diagram import DiagramModel, DiagramState
from schema_assistant.schemas.message import ChatMessage


class ContextResponse(DiagramModel):
    context: DiagramContext
    summary: str


class ParseRequest(DiagramModel):
    content: str = ""


class ParseResponse(DiagramModel):
    """Parsed suggestions plus auxiliary signals from the same text."""

    suggestions: SuggestionSet
    table_definitions: list[dict[str, Any]] = Field(default_factory=list)
    actionable: bool = False
    general_advice: bool = False


class ValidationResponse(DiagramModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class ApplyRequest(DiagramModel):
    suggestions: dict[str, Any]
    diagram: DiagramState = Field(default_factory=DiagramState)


class ApplyResponse(DiagramModel):
    """Outcome of one apply batch and the diagram it produced."""

    applied_count: int
    errors: list[str] = Field(default_factory=list)
    skipped_tables: list[str] = Field(default_factory=list)
    optimizations_applied: int = 0
    optimizations_unapplied: int = 0
    diagram: DiagramState
    undo_stack: list[dict[str, Any]] = Field(default_factory=list)
    messages: list[ChatMessage] = Field(default_factory=list)


class DescriptionRequest(DiagramModel):
    description: str = Field(min_length=1)
