"""Explicit schema validation for table candidates."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from schema_assistant.extraction.types import TableSuggestion


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating one table candidate."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_table_suggestion(candidate: TableSuggestion | Mapping[str, Any] | Any) -> ValidationResult:
    """Check name, fields array and per-field name/type; field numbers are 1-based."""

    if isinstance(candidate, TableSuggestion):
        payload: Mapping[str, Any] = candidate.model_dump()
    elif isinstance(candidate, Mapping):
        payload = candidate
    else:
        payload = {}

    errors: list[str] = []
    if not _is_text(payload.get("name")):
        errors.append("Table name is required")

    fields = payload.get("fields")
    if not isinstance(fields, list):
        errors.append("Table must have fields")
    else:
        for index, item in enumerate(fields, start=1):
            column = item if isinstance(item, Mapping) else {}
            if not _is_text(column.get("name")):
                errors.append(f"Field {index} must have a name")
            if not _is_text(column.get("type")):
                errors.append(f"Field {index} must have a type")

    return ValidationResult(is_valid=not errors, errors=errors)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())
