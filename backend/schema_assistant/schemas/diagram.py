"""Diagram state schemas mirroring the editor's JSON document."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ElementId = str | int


class DiagramModel(BaseModel):
    """Base model accepting both camelCase editor keys and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(DiagramModel):
    """Canvas coordinates."""

    x: float = 0
    y: float = 0


class DiagramField(DiagramModel):
    """Column of a diagram table."""

    id: ElementId
    name: str
    type: str = ""
    default: str | None = None
    check: str | None = None
    primary: bool | None = None
    unique: bool | None = None
    not_null: bool | None = None
    increment: bool | None = None
    comment: str | None = None


class TableIndex(DiagramModel):
    """Index declared on a table."""

    name: str
    fields: list[str] = Field(default_factory=list)
    unique: bool = False


class TableConstraint(DiagramModel):
    """Table-level constraint."""

    name: str
    type: str | None = None
    fields: list[str] = Field(default_factory=list)
    expression: str | None = None


class DiagramTable(DiagramModel):
    """Table node on the canvas."""

    id: ElementId
    name: str
    x: float = 0
    y: float = 0
    locked: bool = False
    fields: list[DiagramField] = Field(default_factory=list)
    comment: str | None = None
    indices: list[TableIndex] = Field(default_factory=list)
    constraints: list[TableConstraint] = Field(default_factory=list)
    color: str = "#ffffff"


class DiagramRelationship(DiagramModel):
    """Edge between two table fields, referenced by opaque identifiers."""

    id: ElementId
    name: str | None = None
    start_table_id: ElementId
    end_table_id: ElementId
    start_field_id: ElementId | None = None
    end_field_id: ElementId | None = None
    cardinality: str = "one_to_many"
    constraint: str | None = None
    color: str = "#000000"


class DiagramNote(DiagramModel):
    """Free-text sticky note."""

    id: ElementId
    content: str
    x: float = 0
    y: float = 0
    width: float = 200
    height: float = 100
    color: str = "#ffffcc"


class DiagramArea(DiagramModel):
    """Subject area grouping tables."""

    id: ElementId
    name: str
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    color: str | None = None


class DiagramState(DiagramModel):
    """Complete diagram document."""

    database: str = "generic"
    tables: list[DiagramTable] = Field(default_factory=list)
    relationships: list[DiagramRelationship] = Field(default_factory=list)
    notes: list[DiagramNote] = Field(default_factory=list)
    areas: list[DiagramArea] = Field(default_factory=list)
    types: list[dict[str, Any]] = Field(default_factory=list)
    enums: list[dict[str, Any]] = Field(default_factory=list)
