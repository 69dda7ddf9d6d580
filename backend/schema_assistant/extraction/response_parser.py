"""Layered extractor turning assistant markdown into candidate diagram suggestions."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError

from schema_assistant.extraction.types import (
    FieldSuggestion,
    NoteSuggestion,
    OptimizationSuggestion,
    RelationshipSuggestion,
    SuggestionSet,
    TableSuggestion,
    default_table_suggestion,
)
from schema_assistant.extraction.vocabulary import DEFAULT_VOCABULARY, HeuristicVocabulary
from schema_assistant.schemas.diagram import Position

logger = logging.getLogger(__name__)

JSON_BLOCK_PATTERN = re.compile(r"```json[^\S\n]*\r?\n(?P<body>.*?)\r?\n```", re.DOTALL | re.IGNORECASE)
SQL_BLOCK_PATTERN = re.compile(r"```sql[^\S\n]*\r?\n(?P<body>.*?)\r?\n```", re.DOTALL | re.IGNORECASE)
CREATE_TABLE_PATTERN = re.compile(
    r"\bCREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[`\"\[]?(?P<name>[A-Za-z_][A-Za-z0-9_]*)[`\"\]]?\s*\(",
    re.IGNORECASE,
)
TABLE_CLAUSE_PATTERN = re.compile(
    r"^(?:PRIMARY\s+KEY|FOREIGN\s+KEY|CONSTRAINT\b|UNIQUE\s*(?:KEY\b|INDEX\b|\()|INDEX\b|KEY\b|CHECK\s*\()",
    re.IGNORECASE,
)
PRIMARY_KEY_PATTERN = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)
NOT_NULL_PATTERN = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
UNIQUE_PATTERN = re.compile(r"\bUNIQUE\b", re.IGNORECASE)
INCREMENT_PATTERN = re.compile(r"\b(?:AUTO_INCREMENT|AUTOINCREMENT|IDENTITY|SERIAL|BIGSERIAL)\b", re.IGNORECASE)
COLUMN_TYPE_PATTERN = re.compile(r"^\S+?(?:\([^)]*\))?(?=\s|$)")
_JSON_SECTIONS: tuple[tuple[str, type[BaseModel]], ...] = (
    ("tables", TableSuggestion),
    ("relationships", RelationshipSuggestion),
    ("notes", NoteSuggestion),
    ("optimizations", OptimizationSuggestion),
)


class ResponseParser:
    """Extract suggestions from free text, degrading from JSON to regex to keyword spotting.

    Every stage runs independently over the raw text and appends to one result.
    ``parse`` never raises for string input.
    """

    def __init__(self, vocabulary: HeuristicVocabulary = DEFAULT_VOCABULARY) -> None:
        self._vocabulary = vocabulary

    def parse(self, text: str | None) -> SuggestionSet:
        """Return every suggestion recognisable in ``text``."""

        result = SuggestionSet()
        if not text:
            return result

        self._extract_json_blocks(text, result)
        self._extract_sql_blocks(text, result)
        self._extract_table_mentions(text, result)
        self._extract_relationship_mentions(text, result)
        self._extract_note_requests(text, result)
        if not result.has_diagram_changes():
            self._extract_general_advice(text, result)
        return result

    def has_actionable_suggestions(self, text: str | None) -> bool:
        """Return whether the text contains any schema action keyword."""

        if not text:
            return False
        lowered = text.lower()
        return any(keyword in lowered for keyword in self._vocabulary.action_keywords)

    def contains_general_advice(self, text: str | None) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(word in lowered for word in self._vocabulary.general_advice_words)

    def _extract_json_blocks(self, text: str, result: SuggestionSet) -> None:
        for index, match in enumerate(JSON_BLOCK_PATTERN.finditer(text)):
            try:
                payload = json.loads(match.group("body"))
            except (ValueError, RecursionError) as exc:
                logger.warning("suggestions.json_block_skipped index=%d error=%s", index, exc)
                continue
            if not isinstance(payload, dict):
                logger.warning("suggestions.json_block_skipped index=%d error=not an object", index)
                continue

            for key, model in _JSON_SECTIONS:
                items = payload.get(key)
                if not isinstance(items, list):
                    continue
                target: list[Any] = getattr(result, key)
                target.extend(self._validate_items(items, model, block_index=index, section=key))

    @staticmethod
    def _validate_items(
        items: Iterable[Any],
        model: type[BaseModel],
        *,
        block_index: int,
        section: str,
    ) -> list[Any]:
        validated: list[Any] = []
        for item_index, item in enumerate(items):
            try:
                validated.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "suggestions.json_item_skipped index=%d section=%s item=%d errors=%d",
                    block_index,
                    section,
                    item_index,
                    exc.error_count(),
                )
        return validated

    @staticmethod
    def _extract_sql_blocks(text: str, result: SuggestionSet) -> None:
        result.sql_queries.extend(match.group("body") for match in SQL_BLOCK_PATTERN.finditer(text))

    def _extract_table_mentions(self, text: str, result: SuggestionSet) -> None:
        claimed: set[int] = set()
        for pattern in self._vocabulary.table_patterns:
            for match in pattern.finditer(text):
                start = match.start("name")
                if start in claimed:
                    continue
                claimed.add(start)
                name = match.group("name")
                if not self._is_plausible_name(name):
                    continue
                result.tables.append(default_table_suggestion(name, f"AI-suggested table: {name}"))

    def _extract_relationship_mentions(self, text: str, result: SuggestionSet) -> None:
        claimed: set[tuple[int, int]] = set()
        for pattern in self._vocabulary.relationship_patterns:
            for match in pattern.finditer(text):
                span_key = (match.start("source"), match.start("target"))
                if span_key in claimed:
                    continue
                claimed.add(span_key)
                source = match.group("source")
                target = match.group("target")
                if not (self._is_plausible_name(source) and self._is_plausible_name(target)):
                    continue
                result.relationships.append(
                    RelationshipSuggestion(
                        from_table=source,
                        to_table=target,
                        from_field=f"{source.lower()}_id",
                        to_field="id",
                        cardinality="one_to_many",
                        constraint="No action",
                    )
                )

    def _extract_note_requests(self, text: str, result: SuggestionSet) -> None:
        claimed: set[int] = set()
        for pattern in self._vocabulary.note_patterns:
            for match in pattern.finditer(text):
                start = match.start("content")
                if start in claimed:
                    continue
                claimed.add(start)
                content = match.group("content").strip()
                if content:
                    result.notes.append(NoteSuggestion(content=content, position=self._default_note_position()))

    def _extract_general_advice(self, text: str, result: SuggestionSet) -> None:
        vocabulary = self._vocabulary
        lowered = text.lower()

        known_names = {table.name for table in result.tables}
        for noun in vocabulary.entity_nouns:
            if noun in known_names or not self._contains_word(text, noun):
                continue
            known_names.add(noun)
            result.tables.append(default_table_suggestion(noun, f"AI-suggested table based on analysis: {noun}"))

        # Source side is a fixed placeholder; these rarely resolve at apply time.
        for phrase in vocabulary.relationship_phrases:
            position = lowered.find(phrase)
            if position == -1:
                continue
            window = text[max(0, position - vocabulary.relationship_window) : position + vocabulary.relationship_window]
            for noun in vocabulary.entity_nouns:
                if self._contains_word(window, noun):
                    result.relationships.append(
                        RelationshipSuggestion(
                            from_table="table1",
                            to_table=noun,
                            from_field="table1_id",
                            to_field="id",
                            cardinality="one_to_many",
                            constraint="No action",
                        )
                    )

        for keyword in vocabulary.note_keywords:
            position = lowered.find(keyword)
            if position == -1:
                continue
            before = text[max(0, position - vocabulary.note_window_before) : position]
            after = text[position : position + vocabulary.note_window_after]
            content = f"Documentation: {before.strip()} {after.strip()}".strip()
            if len(content) > vocabulary.min_note_length:
                result.notes.append(NoteSuggestion(content=content, position=self._default_note_position()))

    def _is_plausible_name(self, name: str) -> bool:
        return (
            len(name) >= 2
            and any(char.isalpha() for char in name)
            and name.lower() not in self._vocabulary.stop_words
        )

    def _default_note_position(self) -> Position:
        x, y = self._vocabulary.default_note_position
        return Position(x=x, y=y)

    @staticmethod
    def _contains_word(text: str, word: str) -> bool:
        return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def parse_response(text: str | None) -> SuggestionSet:
    """Parse with the default vocabulary."""

    return ResponseParser().parse(text)


def extract_table_definitions(text: str | None) -> list[TableSuggestion]:
    """Parse ``CREATE TABLE name (...)`` statements into table suggestions with real columns."""

    tables: list[TableSuggestion] = []
    if not text:
        return tables

    for match in CREATE_TABLE_PATTERN.finditer(text):
        body = _balanced_body(text, match.end() - 1)
        if body is None:
            continue
        fields: list[FieldSuggestion] = []
        table_primary_keys: set[str] = set()
        for definition in _split_top_level(body):
            if TABLE_CLAUSE_PATTERN.match(definition):
                if PRIMARY_KEY_PATTERN.match(definition):
                    table_primary_keys.update(_column_list(definition))
                continue
            parts = definition.split(None, 1)
            if len(parts) < 2:
                continue
            type_match = COLUMN_TYPE_PATTERN.match(parts[1])
            is_primary = PRIMARY_KEY_PATTERN.search(definition) is not None
            fields.append(
                FieldSuggestion(
                    name=parts[0].strip("`\"[]"),
                    type=type_match.group(0) if type_match else parts[1].split()[0],
                    primary_key=is_primary,
                    not_null=is_primary or NOT_NULL_PATTERN.search(definition) is not None,
                    unique=UNIQUE_PATTERN.search(definition) is not None,
                    increment=INCREMENT_PATTERN.search(definition) is not None,
                )
            )
        for field in fields:
            if field.name in table_primary_keys:
                field.primary_key = True
                field.not_null = True
        tables.append(TableSuggestion(name=match.group("name"), fields=fields, comment="Generated from AI response"))
    return tables


def generate_from_description(
    description: str | None,
    vocabulary: HeuristicVocabulary = DEFAULT_VOCABULARY,
) -> SuggestionSet:
    """Draft tables and relationships from a plain-language schema description.

    Entities come from ``table``/``entity`` mentions and a few common nouns and
    get entity-specific default columns. Relationships ("posts belongs to
    users", "orders -> customers") are kept only when both sides are entities
    found in the same description.
    """

    result = SuggestionSet()
    if not description:
        return result

    names: list[str] = []
    for pattern in vocabulary.entity_patterns:
        for match in pattern.finditer(description):
            name = match.group("name")
            lowered = name.lower()
            if name in names or lowered in vocabulary.stop_words or lowered in vocabulary.entity_ignored_words:
                continue
            names.append(name)

    result.tables.extend(
        TableSuggestion(
            name=name,
            fields=_entity_fields(name, vocabulary),
            comment=f"Generated from: {description}",
        )
        for name in names
    )

    for pattern in vocabulary.description_relationship_patterns:
        for match in pattern.finditer(description):
            source = match.group("source")
            target = match.group("target")
            if source not in names or target not in names:
                continue
            result.relationships.append(
                RelationshipSuggestion(
                    from_table=source,
                    to_table=target,
                    from_field=f"{source.lower()}_id",
                    to_field="id",
                    cardinality="one_to_many",
                    constraint="No action",
                )
            )

    logger.info(
        "suggestions.generated_from_description tables=%d relationships=%d",
        len(result.tables),
        len(result.relationships),
    )
    return result


def _entity_fields(name: str, vocabulary: HeuristicVocabulary) -> list[FieldSuggestion]:
    fields = list(default_table_suggestion(name, "").fields or [])
    lowered = name.lower()
    for keywords, template in vocabulary.entity_field_templates:
        if any(keyword in lowered for keyword in keywords):
            fields[1:1] = [column.model_copy() for column in template]
            break
    return fields


def _balanced_body(text: str, open_index: int) -> str | None:
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : index]
    return None


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in body:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def _column_list(definition: str) -> list[str]:
    start = definition.find("(")
    end = definition.rfind(")")
    if start == -1 or end <= start:
        return []
    return [column.strip().strip("`\"[]") for column in definition[start + 1 : end].split(",") if column.strip()]
