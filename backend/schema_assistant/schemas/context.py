"""Read-only diagram projection sent to the assistant."""

from typing import Any

from pydantic import Field

from schema_assistant.schemas.diagram import DiagramModel, Position


class ContextField(DiagramModel):
    name: str
    type: str = ""
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    increment: bool = False
    comment: str = ""
    default: str = ""


class ContextTable(DiagramModel):
    name: str
    fields: list[ContextField] = Field(default_factory=list)
    comment: str = ""
    position: Position = Field(default_factory=Position)


class ContextRelationship(DiagramModel):
    from_table: str
    to_table: str
    from_field: str
    to_field: str
    cardinality: str
    constraint: str
    name: str


class ContextArea(DiagramModel):
    name: str
    color: str | None = None
    position: Position = Field(default_factory=Position)


class ContextNote(DiagramModel):
    content: str
    position: Position = Field(default_factory=Position)


class DiagramContext(DiagramModel):
    """Snapshot of the diagram using names only, never live references."""

    database: str
    tables: list[ContextTable] = Field(default_factory=list)
    relationships: list[ContextRelationship] = Field(default_factory=list)
    areas: list[ContextArea] = Field(default_factory=list)
    notes: list[ContextNote] = Field(default_factory=list)
    types: list[dict[str, Any]] = Field(default_factory=list)
    enums: list[dict[str, Any]] = Field(default_factory=list)
