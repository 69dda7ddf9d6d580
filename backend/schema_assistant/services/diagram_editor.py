"""Diagram mutation collaborator: protocol plus an in-memory implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from schema_assistant.schemas.diagram import (
    DiagramNote,
    DiagramRelationship,
    DiagramState,
    DiagramTable,
    ElementId,
)


@dataclass(slots=True)
class UndoEntry:
    """One reversible diagram operation."""

    action: str
    element: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class DiagramEditor(Protocol):
    """Synchronous, single-writer mutation surface of the diagram."""

    @property
    def undo_stack(self) -> list[UndoEntry]:
        """Current undo entries, oldest first."""

    def snapshot(self) -> DiagramState:
        """Return a detached copy of the diagram."""

    def add_table(self, table: DiagramTable, skip_history: bool = False) -> None: ...

    def add_relationship(self, relationship: DiagramRelationship, skip_history: bool = False) -> None: ...

    def add_note(self, note: DiagramNote, skip_history: bool = False) -> None: ...

    def update_table(self, table_id: ElementId, table: DiagramTable, skip_history: bool = False) -> None: ...

    def set_undo_stack(self, stack: list[UndoEntry]) -> None: ...

    def set_redo_stack(self, stack: list[UndoEntry]) -> None: ...


class InMemoryDiagramEditor:
    """Diagram held in memory; re-adding an element with a known id replaces it."""

    def __init__(
        self,
        state: DiagramState | None = None,
        *,
        undo_stack: list[UndoEntry] | None = None,
        redo_stack: list[UndoEntry] | None = None,
    ) -> None:
        self._state = state.model_copy(deep=True) if state is not None else DiagramState()
        self._undo_stack: list[UndoEntry] = list(undo_stack or [])
        self._redo_stack: list[UndoEntry] = list(redo_stack or [])

    @property
    def undo_stack(self) -> list[UndoEntry]:
        return list(self._undo_stack)

    @property
    def redo_stack(self) -> list[UndoEntry]:
        return list(self._redo_stack)

    def snapshot(self) -> DiagramState:
        return self._state.model_copy(deep=True)

    def add_table(self, table: DiagramTable, skip_history: bool = False) -> None:
        _upsert(self._state.tables, table.model_copy(deep=True))
        if not skip_history:
            self._record("add", "table", f"Added table {table.name}", table)

    def add_relationship(self, relationship: DiagramRelationship, skip_history: bool = False) -> None:
        _upsert(self._state.relationships, relationship.model_copy(deep=True))
        if not skip_history:
            self._record("add", "relationship", f"Added relationship {relationship.name or relationship.id}", relationship)

    def add_note(self, note: DiagramNote, skip_history: bool = False) -> None:
        _upsert(self._state.notes, note.model_copy(deep=True))
        if not skip_history:
            self._record("add", "note", "Added note", note)

    def update_table(self, table_id: ElementId, table: DiagramTable, skip_history: bool = False) -> None:
        for index, existing in enumerate(self._state.tables):
            if existing.id == table_id:
                self._state.tables[index] = table.model_copy(deep=True)
                break
        else:
            raise KeyError(f"Unknown table id: {table_id}")
        if not skip_history:
            self._record("edit", "table", f"Edited table {table.name}", table)

    def set_undo_stack(self, stack: list[UndoEntry]) -> None:
        self._undo_stack = list(stack)

    def set_redo_stack(self, stack: list[UndoEntry]) -> None:
        self._redo_stack = list(stack)

    def _record(self, action: str, element: str, message: str, payload: Any) -> None:
        self._undo_stack.append(
            UndoEntry(action=action, element=element, message=message, data=payload.model_dump(by_alias=True))
        )
        self._redo_stack.clear()


def _upsert(items: list[Any], item: Any) -> None:
    for index, existing in enumerate(items):
        if existing.id == item.id:
            items[index] = item
            return
    items.append(item)
