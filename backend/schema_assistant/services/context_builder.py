"""Project live diagram state into the name-only context sent to the assistant."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from schema_assistant.schemas.context import (
    ContextArea,
    ContextField,
    ContextNote,
    ContextRelationship,
    ContextTable,
    DiagramContext,
)
from schema_assistant.schemas.diagram import DiagramField, DiagramState, DiagramTable, ElementId, Position

UNKNOWN_REFERENCE = "unknown"


def build_diagram_context(state: DiagramState | Mapping[str, Any]) -> DiagramContext:
    """Return a detached snapshot of the diagram; unresolved references become ``"unknown"``."""

    if not isinstance(state, DiagramState):
        state = DiagramState.model_validate(state)

    tables_by_id: dict[ElementId, DiagramTable] = {}
    field_names: dict[tuple[ElementId, ElementId], str] = {}
    for table in state.tables:
        if table.id in tables_by_id:
            continue
        tables_by_id[table.id] = table
        for column in table.fields:
            field_names.setdefault((table.id, column.id), column.name)

    return DiagramContext(
        database=state.database,
        tables=[
            ContextTable(
                name=table.name,
                fields=[_context_field(column) for column in table.fields],
                comment=table.comment or "",
                position=Position(x=table.x, y=table.y),
            )
            for table in state.tables
        ],
        relationships=[
            ContextRelationship(
                from_table=_table_name(tables_by_id, relationship.start_table_id),
                to_table=_table_name(tables_by_id, relationship.end_table_id),
                from_field=_field_name(field_names, relationship.start_table_id, relationship.start_field_id),
                to_field=_field_name(field_names, relationship.end_table_id, relationship.end_field_id),
                cardinality=relationship.cardinality,
                constraint=relationship.constraint or "No action",
                name=relationship.name or f"rel_{relationship.id}",
            )
            for relationship in state.relationships
        ],
        areas=[
            ContextArea(name=area.name, color=area.color, position=Position(x=area.x, y=area.y))
            for area in state.areas
        ],
        notes=[ContextNote(content=note.content, position=Position(x=note.x, y=note.y)) for note in state.notes],
        types=copy.deepcopy(state.types),
        enums=copy.deepcopy(state.enums),
    )


def build_context_summary(context: DiagramContext) -> str:
    """Render a short plain-text overview of a context."""

    lines = [
        f"Database: {context.database}",
        f"Tables: {len(context.tables)}",
        f"Relationships: {len(context.relationships)}",
    ]
    if context.tables:
        lines.append("")
        lines.append("Tables:")
        lines.extend(f"- {table.name} ({len(table.fields)} fields)" for table in context.tables)
    if context.relationships:
        lines.append("")
        lines.append("Relationships:")
        lines.extend(
            f"- {rel.from_table}.{rel.from_field} -> {rel.to_table}.{rel.to_field}" for rel in context.relationships
        )
    return "\n".join(lines) + "\n"


def _context_field(column: DiagramField) -> ContextField:
    return ContextField(
        name=column.name,
        type=column.type,
        primary_key=bool(column.primary),
        not_null=bool(column.not_null),
        unique=bool(column.unique),
        increment=bool(column.increment),
        comment=column.comment or "",
        default=column.default or "",
    )


def _table_name(tables_by_id: dict[ElementId, DiagramTable], table_id: ElementId) -> str:
    table = tables_by_id.get(table_id)
    return table.name if table is not None else UNKNOWN_REFERENCE


def _field_name(
    field_names: dict[tuple[ElementId, ElementId], str],
    table_id: ElementId,
    field_id: ElementId | None,
) -> str:
    if field_id is None:
        return UNKNOWN_REFERENCE
    return field_names.get((table_id, field_id), UNKNOWN_REFERENCE)
