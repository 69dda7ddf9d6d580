"""Pattern and keyword data driving the heuristic response parser.

Kept apart from the parser so the vocabulary can be swapped or tuned in tests
without touching extraction logic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from schema_assistant.extraction.types import FieldSuggestion

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_LINK = r"\s*(?:->|\b(?:to|references|with)\b)\s*"
_ADD = r"(?:add(?:s|ed|ing)?|creat(?:e|es|ed|ing)|insert(?:s|ed|ing)?|includ(?:e|es|ed|ing))"
_SUGGEST = r"(?:suggest\w*|recommend\w*|consider(?:s|ed|ing)?)"
_DIRECT = r"(?:you\s+should|i\s+recommend|consider\s+adding)"
_CLAUSE = r"[^.!?\n]*?"

_FLAGS = re.IGNORECASE


@dataclass(frozen=True, slots=True)
class HeuristicVocabulary:
    """Ordered patterns and word lists used by each extraction stage."""

    table_patterns: tuple[re.Pattern[str], ...]
    relationship_patterns: tuple[re.Pattern[str], ...]
    note_patterns: tuple[re.Pattern[str], ...]
    stop_words: frozenset[str]
    entity_nouns: tuple[str, ...]
    relationship_phrases: tuple[str, ...]
    note_keywords: tuple[str, ...]
    action_keywords: tuple[str, ...]
    general_advice_words: tuple[str, ...]
    entity_patterns: tuple[re.Pattern[str], ...] = ()
    description_relationship_patterns: tuple[re.Pattern[str], ...] = ()
    entity_ignored_words: frozenset[str] = frozenset()
    entity_field_templates: tuple[tuple[tuple[str, ...], tuple[FieldSuggestion, ...]], ...] = ()
    default_note_position: tuple[float, float] = (100.0, 100.0)
    relationship_window: int = 100
    note_window_before: int = 50
    note_window_after: int = 100
    min_note_length: int = 20


DEFAULT_VOCABULARY = HeuristicVocabulary(
    table_patterns=(
        re.compile(rf"\b(?:create\s+table(?:\s+if\s+not\s+exists)?|add\s+table|table:)\s*(?P<name>{_NAME})", _FLAGS),
        re.compile(rf"\b{_SUGGEST}\b{_CLAUSE}\btables?\s+(?P<name>{_NAME})", _FLAGS),
        re.compile(rf"\b(?:missing|{_ADD})\b{_CLAUSE}\btables?\s+(?P<name>{_NAME})", _FLAGS),
        re.compile(rf"\b{_DIRECT}\b{_CLAUSE}\btables?\s+(?P<name>{_NAME})", _FLAGS),
    ),
    relationship_patterns=(
        re.compile(
            rf"\b(?:relationships?|foreign\s+keys?|fks?|connections?|links?)\b\s*(?P<source>{_NAME}){_LINK}(?P<target>{_NAME})",
            _FLAGS,
        ),
        re.compile(
            rf"\b{_SUGGEST}\b{_CLAUSE}\brelationships?\b{_CLAUSE}\b(?P<source>{_NAME}){_LINK}(?P<target>{_NAME})",
            _FLAGS,
        ),
        re.compile(
            rf"\b{_DIRECT}\b{_CLAUSE}\brelationships?\b{_CLAUSE}\b(?P<source>{_NAME}){_LINK}(?P<target>{_NAME})",
            _FLAGS,
        ),
    ),
    note_patterns=(
        re.compile(
            rf"\b{_ADD}\b[^\n]*?\bnotes?\b[^\n]*?\b(?:about|for|regarding|documenting)\b\s*(?P<content>[^\n]+)",
            _FLAGS,
        ),
        re.compile(
            rf"\b{_ADD}\b[^\n]*?\b(?:documents?|documentation|specs?|specifications?)\b[^\n]*?"
            rf"\b(?:about|for|regarding)\b\s*(?P<content>[^\n]+)",
            _FLAGS,
        ),
    ),
    stop_words=frozenset(
        {
            "the",
            "and",
            "or",
            "but",
            "for",
            "nor",
            "yet",
            "so",
            "a",
            "an",
            "in",
            "on",
            "at",
            "to",
            "of",
            "with",
            "by",
            "linked",
            "connected",
            "related",
        }
    ),
    entity_nouns=(
        "users",
        "user",
        "customers",
        "customer",
        "orders",
        "order",
        "products",
        "product",
        "categories",
        "category",
        "posts",
        "post",
        "comments",
        "comment",
        "tags",
        "tag",
        "sessions",
        "session",
        "logs",
        "log",
        "audit",
        "audits",
        "settings",
        "setting",
        "profiles",
        "profile",
        "addresses",
        "address",
        "payments",
        "payment",
        "inventory",
        "stock",
        "suppliers",
        "supplier",
        "employees",
        "employee",
    ),
    relationship_phrases=(
        "belongs to",
        "has many",
        "has one",
        "many to many",
        "one to many",
        "one to one",
        "foreign key",
        "reference",
        "relates to",
        "connected to",
        "linked to",
    ),
    note_keywords=(
        "spec",
        "specification",
        "document",
        "documentation",
        "note",
        "notes",
        "comment",
        "comments",
        "description",
        "explanation",
        "details",
    ),
    action_keywords=(
        "create table",
        "add table",
        "foreign key",
        "index",
        "constraint",
        "alter table",
        "drop table",
        "suggest",
        "recommend",
        "add",
        "create",
        "modify",
        "optimize",
    ),
    general_advice_words=(
        "suggest",
        "recommend",
        "consider",
        "improve",
        "add",
        "missing",
        "note",
        "document",
        "spec",
    ),
    entity_patterns=(
        re.compile(rf"\b(?:create|add|make)\s+(?:a\s+)?(?:table|entity)\s+(?P<name>{_NAME})", _FLAGS),
        re.compile(rf"\b(?P<name>{_NAME})\s+(?:table|entity)\b", _FLAGS),
        re.compile(r"\b(?P<name>users?|posts?|comments?|products?|orders?|customers?)\b", _FLAGS),
    ),
    description_relationship_patterns=(
        re.compile(rf"\b(?P<source>{_NAME})\s+(?:has|belongs\s+to|references|links\s+to)\s+(?P<target>{_NAME})", _FLAGS),
        re.compile(rf"\b(?P<source>{_NAME})\s*(?:->>|->|<<-|<-)\s*(?P<target>{_NAME})", _FLAGS),
    ),
    entity_ignored_words=frozenset({"create", "add", "make", "new", "this", "that", "each", "every", "another"}),
    entity_field_templates=(
        (
            ("user", "customer"),
            (
                FieldSuggestion(name="name", type="VARCHAR(255)", not_null=True),
                FieldSuggestion(name="email", type="VARCHAR(255)", unique=True),
                FieldSuggestion(name="password_hash", type="VARCHAR(255)"),
            ),
        ),
        (
            ("post", "article"),
            (
                FieldSuggestion(name="title", type="VARCHAR(255)", not_null=True),
                FieldSuggestion(name="content", type="TEXT"),
                FieldSuggestion(name="author_id", type="INTEGER"),
            ),
        ),
        (
            ("product",),
            (
                FieldSuggestion(name="name", type="VARCHAR(255)", not_null=True),
                FieldSuggestion(name="description", type="TEXT"),
                FieldSuggestion(name="price", type="DECIMAL(10,2)"),
                FieldSuggestion(name="stock_quantity", type="INTEGER"),
            ),
        ),
    ),
)
