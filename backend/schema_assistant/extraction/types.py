"""Candidate suggestions parsed from assistant text, not yet validated against a diagram."""

from pydantic import Field

from schema_assistant.schemas.diagram import DiagramModel, Position


class FieldSuggestion(DiagramModel):
    """Column proposed for a table."""

    name: str | None = None
    type: str | None = None
    primary_key: bool | None = None
    not_null: bool | None = None
    unique: bool | None = None
    increment: bool | None = None
    comment: str | None = None
    default_value: str | None = None


class TableSuggestion(DiagramModel):
    """Table proposed by the assistant."""

    name: str | None = None
    fields: list[FieldSuggestion] | None = None
    comment: str | None = None


class RelationshipSuggestion(DiagramModel):
    """Relationship between two tables referenced by free-text names."""

    from_table: str | None = None
    to_table: str | None = None
    from_field: str | None = None
    to_field: str | None = None
    cardinality: str | None = "one_to_many"
    constraint: str | None = "No action"


class NoteSuggestion(DiagramModel):
    """Documentation note."""

    content: str | None = None
    position: Position | None = None


class OptimizationSuggestion(DiagramModel):
    """Index or constraint addition targeting an existing table."""

    type: str | None = None
    table_name: str | None = None
    index_name: str | None = None
    constraint_name: str | None = None
    constraint_type: str | None = None
    fields: list[str] = Field(default_factory=list)
    unique: bool | None = None
    expression: str | None = None


class SuggestionSet(DiagramModel):
    """Container for everything extracted from one assistant response."""

    tables: list[TableSuggestion] = Field(default_factory=list)
    relationships: list[RelationshipSuggestion] = Field(default_factory=list)
    notes: list[NoteSuggestion] = Field(default_factory=list)
    sql_queries: list[str] = Field(default_factory=list)
    optimizations: list[OptimizationSuggestion] = Field(default_factory=list)

    def has_diagram_changes(self) -> bool:
        return bool(self.tables or self.relationships or self.notes)

    def is_empty(self) -> bool:
        return not (self.has_diagram_changes() or self.sql_queries or self.optimizations)


def default_table_suggestion(name: str, comment: str) -> TableSuggestion:
    """Return a table with the stock id/created_at/updated_at schema."""

    return TableSuggestion(
        name=name,
        fields=[
            FieldSuggestion(name="id", type="INTEGER", primary_key=True),
            FieldSuggestion(name="created_at", type="TIMESTAMP"),
            FieldSuggestion(name="updated_at", type="TIMESTAMP"),
        ],
        comment=comment,
    )
