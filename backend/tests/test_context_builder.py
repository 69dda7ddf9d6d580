"""Tests for the diagram context projection."""

from __future__ import annotations

import unittest

from schema_assistant.schemas.diagram import (
    DiagramField,
    DiagramNote,
    DiagramRelationship,
    DiagramState,
    DiagramTable,
)
from schema_assistant.services.context_builder import (
    UNKNOWN_REFERENCE,
    build_context_summary,
    build_diagram_context,
)


def _blog_diagram() -> DiagramState:
    return DiagramState(
        database="postgresql",
        tables=[
            DiagramTable(
                id=1,
                name="users",
                x=10,
                y=20,
                fields=[DiagramField(id=11, name="id", type="INTEGER", primary=True)],
            ),
            DiagramTable(
                id=2,
                name="posts",
                fields=[
                    DiagramField(id=21, name="id", type="INTEGER", primary=True),
                    DiagramField(id=22, name="user_id", type="INTEGER", comment=None),
                ],
            ),
        ],
        relationships=[
            DiagramRelationship(id=7, start_table_id=2, end_table_id=1, start_field_id=22, end_field_id=11),
        ],
        notes=[DiagramNote(id=3, content="Blog schema", x=5, y=6)],
        types=[{"name": "money", "fields": []}],
    )


class ContextBuilderTests(unittest.TestCase):
    def test_empty_diagram_builds_empty_context(self) -> None:
        context = build_diagram_context(DiagramState())

        self.assertEqual(context.database, "generic")
        self.assertEqual(context.tables, [])
        self.assertEqual(context.relationships, [])

    def test_relationships_resolve_to_names(self) -> None:
        context = build_diagram_context(_blog_diagram())

        relationship = context.relationships[0]
        self.assertEqual(relationship.from_table, "posts")
        self.assertEqual(relationship.to_table, "users")
        self.assertEqual(relationship.from_field, "user_id")
        self.assertEqual(relationship.to_field, "id")
        self.assertEqual(relationship.constraint, "No action")
        self.assertEqual(relationship.name, "rel_7")

    def test_missing_table_reference_resolves_to_unknown(self) -> None:
        diagram = _blog_diagram()
        diagram.relationships.append(DiagramRelationship(id=8, start_table_id=99, end_table_id=1, end_field_id=11))

        context = build_diagram_context(diagram)

        dangling = context.relationships[1]
        self.assertEqual(dangling.from_table, UNKNOWN_REFERENCE)
        self.assertEqual(dangling.from_field, UNKNOWN_REFERENCE)
        self.assertEqual(dangling.to_table, "users")

    def test_absent_field_flags_default_to_false_and_empty_text(self) -> None:
        context = build_diagram_context(_blog_diagram())

        user_id = context.tables[1].fields[1]
        self.assertFalse(user_id.primary_key)
        self.assertFalse(user_id.not_null)
        self.assertFalse(user_id.unique)
        self.assertFalse(user_id.increment)
        self.assertEqual(user_id.comment, "")
        self.assertEqual(user_id.default, "")
        self.assertTrue(context.tables[1].fields[0].primary_key)

    def test_context_is_a_detached_snapshot(self) -> None:
        diagram = _blog_diagram()
        context = build_diagram_context(diagram)

        diagram.tables[0].name = "accounts"
        diagram.types[0]["name"] = "changed"

        self.assertEqual(context.tables[0].name, "users")
        self.assertEqual(context.types[0]["name"], "money")

    def test_accepts_camel_case_mapping(self) -> None:
        context = build_diagram_context(
            {
                "database": "mysql",
                "tables": [{"id": "a", "name": "orders", "fields": [{"id": "f", "name": "id", "notNull": True}]}],
                "relationships": [{"id": "r", "startTableId": "a", "endTableId": "zzz"}],
            }
        )

        self.assertTrue(context.tables[0].fields[0].not_null)
        self.assertEqual(context.relationships[0].to_table, UNKNOWN_REFERENCE)
        dumped = context.model_dump(by_alias=True)
        self.assertIn("fromTable", dumped["relationships"][0])
        self.assertIn("primaryKey", dumped["tables"][0]["fields"][0])

    def test_summary_lists_tables_and_relationships(self) -> None:
        summary = build_context_summary(build_diagram_context(_blog_diagram()))

        self.assertIn("Database: postgresql", summary)
        self.assertIn("Tables: 2", summary)
        self.assertIn("- posts (2 fields)", summary)
        self.assertIn("- posts.user_id -> users.id", summary)


if __name__ == "__main__":
    unittest.main()
