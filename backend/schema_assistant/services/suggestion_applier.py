"""Materialize parsed suggestions as diagram entities with one undo entry per change.

Applying is split in two phases. ``plan_suggestions`` is a pure function of
(suggestions, diagram snapshot) returning the mutations to perform plus
per-item errors. ``apply_suggestions`` commits a plan through the diagram
editor collaborator, so a failing item never blocks unrelated ones.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from schema_assistant.extraction.types import (
    NoteSuggestion,
    OptimizationSuggestion,
    RelationshipSuggestion,
    SuggestionSet,
    TableSuggestion,
)
from schema_assistant.extraction.validation import validate_table_suggestion
from schema_assistant.schemas.diagram import (
    DiagramField,
    DiagramNote,
    DiagramRelationship,
    DiagramState,
    DiagramTable,
    TableConstraint,
    TableIndex,
)
from schema_assistant.services.diagram_editor import DiagramEditor, UndoEntry

logger = logging.getLogger(__name__)

TABLE_ORIGIN = (100.0, 100.0)
TABLE_SPACING_X = 300.0
NOTE_SPACING = (200.0, 100.0)

IdFactory = Callable[[], str]


class SuggestionPayloadError(ValueError):
    """Raised when the top-level input is not a suggestion set."""


def new_element_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class PlannedChange:
    """One diagram mutation ready to be committed."""

    action: str
    element: str
    payload: DiagramTable | DiagramRelationship | DiagramNote
    message: str
    label: str


@dataclass(slots=True)
class ApplyPlan:
    """Mutations and per-item errors derived from a suggestion set."""

    changes: list[PlannedChange] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped_tables: list[str] = field(default_factory=list)
    unapplied_optimizations: int = 0


@dataclass(slots=True)
class ApplyResult:
    """Aggregate outcome of applying one suggestion set."""

    applied_count: int = 0
    errors: list[str] = field(default_factory=list)
    tables: list[DiagramTable] = field(default_factory=list)
    relationships: list[DiagramRelationship] = field(default_factory=list)
    notes: list[DiagramNote] = field(default_factory=list)
    optimizations_applied: int = 0
    optimizations_unapplied: int = 0
    skipped_tables: list[str] = field(default_factory=list)


def plan_suggestions(
    suggestions: SuggestionSet | Mapping[str, Any],
    snapshot: DiagramState,
    *,
    id_factory: IdFactory = new_element_id,
) -> ApplyPlan:
    """Resolve suggestions against ``snapshot`` without touching any diagram.

    Tables are planned first, then relationships (which may point at tables
    planned in the same batch), then notes, then optimizations.
    """

    suggestion_set = _coerce_suggestions(suggestions)
    plan = ApplyPlan()
    known_tables: list[DiagramTable] = [table.model_copy(deep=True) for table in snapshot.tables]

    for candidate in suggestion_set.tables:
        _plan_table(candidate, plan, known_tables, id_factory)

    tables_by_name: dict[str, DiagramTable] = {}
    for table in known_tables:
        tables_by_name.setdefault(table.name, table)

    for candidate in suggestion_set.relationships:
        _plan_relationship(candidate, plan, tables_by_name, id_factory)
    for candidate in suggestion_set.notes:
        _plan_note(candidate, plan, id_factory)
    for candidate in suggestion_set.optimizations:
        _plan_optimization(candidate, plan, tables_by_name)
    return plan


def apply_suggestions(
    suggestions: SuggestionSet | Mapping[str, Any],
    editor: DiagramEditor,
    *,
    id_factory: IdFactory = new_element_id,
) -> ApplyResult:
    """Apply every resolvable suggestion and collect errors for the rest."""

    plan = plan_suggestions(suggestions, editor.snapshot(), id_factory=id_factory)
    result = ApplyResult(
        errors=list(plan.errors),
        optimizations_unapplied=plan.unapplied_optimizations,
        skipped_tables=list(plan.skipped_tables),
    )

    failed_table_ids: set[str] = set()
    for change in plan.changes:
        if _depends_on_failed_table(change, failed_table_ids):
            logger.warning("suggestions.apply_skipped element=%s label=%s", change.element, change.label)
            if change.action == "edit":
                result.optimizations_unapplied += 1
            else:
                result.errors.append(f"Could not find tables for relationship: {change.label}")
            continue

        try:
            _commit(editor, change)
        except Exception as exc:
            logger.exception("suggestions.apply_failed element=%s label=%s", change.element, change.label)
            result.errors.append(f"Failed to add {change.element} {change.label}: {exc}")
            if change.action == "add" and isinstance(change.payload, DiagramTable):
                failed_table_ids.add(str(change.payload.id))
            continue

        result.applied_count += 1
        if change.action == "edit":
            result.optimizations_applied += 1
        elif isinstance(change.payload, DiagramTable):
            result.tables.append(change.payload)
        elif isinstance(change.payload, DiagramRelationship):
            result.relationships.append(change.payload)
        else:
            result.notes.append(change.payload)

    logger.info(
        "suggestions.applied applied=%d errors=%d skipped_tables=%d",
        result.applied_count,
        len(result.errors),
        len(result.skipped_tables),
    )
    return result


def _coerce_suggestions(suggestions: SuggestionSet | Mapping[str, Any]) -> SuggestionSet:
    if isinstance(suggestions, SuggestionSet):
        return suggestions
    if isinstance(suggestions, Mapping):
        try:
            return SuggestionSet.model_validate(suggestions)
        except ValidationError as exc:
            raise SuggestionPayloadError(f"Invalid suggestion payload: {exc}") from exc
    raise SuggestionPayloadError("Suggestions must be a suggestion set or a mapping.")


def _plan_table(
    candidate: TableSuggestion,
    plan: ApplyPlan,
    known_tables: list[DiagramTable],
    id_factory: IdFactory,
) -> None:
    if candidate.name and any(table.name == candidate.name for table in known_tables):
        plan.skipped_tables.append(candidate.name)
        return

    validation = validate_table_suggestion(candidate)
    if not validation.is_valid:
        plan.errors.append(f"Table {candidate.name or '(unnamed)'}: {'; '.join(validation.errors)}")
        return

    table = DiagramTable(
        id=id_factory(),
        name=candidate.name,
        x=TABLE_ORIGIN[0] + len(plan.changes) * TABLE_SPACING_X,
        y=TABLE_ORIGIN[1],
        fields=[
            DiagramField(
                id=id_factory(),
                name=column.name,
                type=column.type,
                default=column.default_value or "",
                check="",
                primary=bool(column.primary_key),
                unique=bool(column.unique),
                not_null=bool(column.not_null),
                increment=bool(column.increment),
                comment=column.comment or "",
            )
            for column in candidate.fields or []
        ],
        comment=candidate.comment or "",
    )
    known_tables.append(table)
    plan.changes.append(
        PlannedChange(
            action="add",
            element="table",
            payload=table,
            message=f"Applied AI table suggestion: {table.name}",
            label=table.name,
        )
    )


def _plan_relationship(
    candidate: RelationshipSuggestion,
    plan: ApplyPlan,
    tables_by_name: dict[str, DiagramTable],
    id_factory: IdFactory,
) -> None:
    label = f"{candidate.from_table} → {candidate.to_table}"
    source = tables_by_name.get(candidate.from_table or "")
    target = tables_by_name.get(candidate.to_table or "")
    if source is None or target is None:
        plan.errors.append(f"Could not find tables for relationship: {label}")
        return

    source_field = _resolve_field(source, candidate.from_field)
    target_field = _resolve_field(target, candidate.to_field)
    if source_field is None or target_field is None:
        plan.errors.append(f"Could not find appropriate fields for relationship: {label}")
        return

    relationship_id = id_factory()
    relationship = DiagramRelationship(
        id=relationship_id,
        name=f"rel_{relationship_id}",
        start_table_id=source.id,
        end_table_id=target.id,
        start_field_id=source_field.id,
        end_field_id=target_field.id,
        cardinality=candidate.cardinality or "one_to_many",
        constraint=candidate.constraint or "No action",
    )
    plan.changes.append(
        PlannedChange(
            action="add",
            element="relationship",
            payload=relationship,
            message=f"Applied AI relationship suggestion: {source.name} → {target.name}",
            label=label,
        )
    )


def _resolve_field(table: DiagramTable, name: str | None) -> DiagramField | None:
    """Exact name, then the primary key, then the first field."""

    if name:
        for column in table.fields:
            if column.name == name:
                return column
    for column in table.fields:
        if column.primary:
            return column
    return table.fields[0] if table.fields else None


def _plan_note(candidate: NoteSuggestion, plan: ApplyPlan, id_factory: IdFactory) -> None:
    if not isinstance(candidate.content, str) or not candidate.content.strip():
        plan.errors.append("Failed to add note: note content is required")
        return

    if candidate.position is not None:
        x, y = candidate.position.x, candidate.position.y
    else:
        offset = len(plan.changes)
        x = TABLE_ORIGIN[0] + offset * NOTE_SPACING[0]
        y = TABLE_ORIGIN[1] + offset * NOTE_SPACING[1]

    note = DiagramNote(id=id_factory(), content=candidate.content, x=x, y=y)
    plan.changes.append(
        PlannedChange(
            action="add",
            element="note",
            payload=note,
            message="Applied AI note suggestion",
            label=candidate.content[:50],
        )
    )


def _plan_optimization(
    candidate: OptimizationSuggestion,
    plan: ApplyPlan,
    tables_by_name: dict[str, DiagramTable],
) -> None:
    table = tables_by_name.get(candidate.table_name or "")
    if table is None or candidate.type not in {"add_index", "add_constraint"}:
        plan.unapplied_optimizations += 1
        return

    if candidate.type == "add_index":
        index = TableIndex(
            name=candidate.index_name or f"{table.name}_{'_'.join(candidate.fields) or 'idx'}_idx",
            fields=list(candidate.fields),
            unique=bool(candidate.unique),
        )
        updated = table.model_copy(update={"indices": [*table.indices, index]}, deep=True)
        message = f"Applied AI index suggestion on {table.name}: {index.name}"
    else:
        constraint = TableConstraint(
            name=candidate.constraint_name or f"{table.name}_constraint_{len(table.constraints) + 1}",
            type=candidate.constraint_type,
            fields=list(candidate.fields),
            expression=candidate.expression,
        )
        updated = table.model_copy(update={"constraints": [*table.constraints, constraint]}, deep=True)
        message = f"Applied AI constraint suggestion on {table.name}: {constraint.name}"

    tables_by_name[table.name] = updated
    plan.changes.append(
        PlannedChange(action="edit", element="table", payload=updated, message=message, label=table.name)
    )


def _depends_on_failed_table(change: PlannedChange, failed_table_ids: set[str]) -> bool:
    if not failed_table_ids:
        return False
    payload = change.payload
    if isinstance(payload, DiagramRelationship):
        return str(payload.start_table_id) in failed_table_ids or str(payload.end_table_id) in failed_table_ids
    if change.action == "edit":
        return str(payload.id) in failed_table_ids
    return False


def _commit(editor: DiagramEditor, change: PlannedChange) -> None:
    payload = change.payload
    if change.action == "edit":
        editor.update_table(payload.id, payload, skip_history=True)
    elif isinstance(payload, DiagramTable):
        editor.add_table(payload, skip_history=True)
    elif isinstance(payload, DiagramRelationship):
        editor.add_relationship(payload, skip_history=True)
    else:
        editor.add_note(payload, skip_history=True)

    entry = UndoEntry(
        action=change.action,
        element=change.element,
        message=change.message,
        data=payload.model_dump(by_alias=True),
    )
    editor.set_undo_stack([*editor.undo_stack, entry])
    editor.set_redo_stack([])
