"""Tests for the layered response parser."""

from __future__ import annotations

import unittest

from schema_assistant.extraction.response_parser import ResponseParser, parse_response

_FOO_BLOCK = '```json\n{"tables":[{"name":"foo","fields":[{"name":"id","type":"INTEGER"}]}]}\n```'


class ResponseParserTests(unittest.TestCase):
    def setUp(self) -> None:
        self.parser = ResponseParser()

    def test_empty_text_yields_empty_sequences(self) -> None:
        for text in ("", None):
            result = self.parser.parse(text)
            self.assertEqual(result.tables, [])
            self.assertEqual(result.relationships, [])
            self.assertEqual(result.notes, [])
            self.assertEqual(result.sql_queries, [])
            self.assertEqual(result.optimizations, [])
            self.assertTrue(result.is_empty())

    def test_single_json_block_yields_one_table(self) -> None:
        result = self.parser.parse(f"Here is the schema:\n{_FOO_BLOCK}\n")

        self.assertEqual([table.name for table in result.tables], ["foo"])
        self.assertEqual(result.tables[0].fields[0].type, "INTEGER")

    def test_malformed_json_block_is_skipped(self) -> None:
        text = "```json\n{\"tables\": [oops\n```\n\nSecond try:\n" + _FOO_BLOCK

        with self.assertLogs("schema_assistant.extraction.response_parser", level="WARNING") as captured:
            result = self.parser.parse(text)

        self.assertEqual([table.name for table in result.tables], ["foo"])
        self.assertTrue(any("json_block_skipped" in line for line in captured.output))

    def test_invalid_json_item_is_skipped_without_dropping_siblings(self) -> None:
        text = (
            "```json\n"
            '{"tables": [{"name": ["bad"]}, {"name": "ok", "fields": []}],'
            ' "relationships": [{"fromTable": "ok", "toTable": "users", "fromField": "user_id", "toField": "id"}],'
            ' "notes": [{"content": "Reviewed", "position": {"x": 5, "y": 7}}],'
            ' "optimizations": [{"type": "add_index", "tableName": "ok", "fields": ["name"]}]}\n'
            "```"
        )

        result = self.parser.parse(text)

        self.assertEqual([table.name for table in result.tables], ["ok"])
        self.assertEqual(result.relationships[0].from_field, "user_id")
        self.assertEqual(result.notes[0].position.x, 5)
        self.assertEqual(result.optimizations[0].table_name, "ok")

    def test_sql_blocks_are_collected_verbatim(self) -> None:
        sql = "SELECT *\nFROM users;"
        result = self.parser.parse(f"Try this:\n```sql\n{sql}\n```")

        self.assertEqual(result.sql_queries, [sql])

    def test_recommend_adding_table(self) -> None:
        result = self.parser.parse("I recommend adding table orders")

        self.assertEqual(len(result.tables), 1)
        table = result.tables[0]
        self.assertEqual(table.name, "orders")
        self.assertEqual([column.name for column in table.fields], ["id", "created_at", "updated_at"])
        self.assertTrue(table.fields[0].primary_key)
        self.assertEqual(table.fields[0].type, "INTEGER")
        self.assertEqual(table.fields[1].type, "TIMESTAMP")
        self.assertEqual(table.comment, "AI-suggested table: orders")

    def test_distinct_mentions_of_same_table_are_kept(self) -> None:
        result = self.parser.parse("CREATE TABLE tags (id INT);\nYou should also add table tags")

        self.assertEqual([table.name for table in result.tables], ["tags", "tags"])

    def test_link_phrase_yields_relationship(self) -> None:
        result = self.parser.parse("link posts to users")

        self.assertEqual(len(result.relationships), 1)
        relationship = result.relationships[0]
        self.assertEqual(relationship.from_table, "posts")
        self.assertEqual(relationship.to_table, "users")
        self.assertEqual(relationship.from_field, "posts_id")
        self.assertEqual(relationship.to_field, "id")
        self.assertEqual(relationship.cardinality, "one_to_many")
        self.assertEqual(relationship.constraint, "No action")

    def test_stop_words_are_not_relationship_endpoints(self) -> None:
        result = self.parser.parse("connection the -> users")

        self.assertEqual(result.relationships, [])

    def test_note_request_captures_trailing_text(self) -> None:
        result = self.parser.parse("Please add a note about the billing workflow")

        self.assertEqual(len(result.notes), 1)
        self.assertEqual(result.notes[0].content, "the billing workflow")
        self.assertEqual((result.notes[0].position.x, result.notes[0].position.y), (100, 100))

    def test_fallback_finds_entity_noun(self) -> None:
        result = parse_response("Think about how your customers behave over time.")

        self.assertEqual([table.name for table in result.tables], ["customers"])
        self.assertEqual(
            [column.name for column in result.tables[0].fields],
            ["id", "created_at", "updated_at"],
        )
        self.assertEqual(result.tables[0].comment, "AI-suggested table based on analysis: customers")

    def test_fallback_relationships_use_placeholder_source(self) -> None:
        result = self.parser.parse("Each order belongs to one of the customers.")

        self.assertEqual({table.name for table in result.tables}, {"customers", "order"})
        self.assertTrue(result.relationships)
        self.assertTrue(all(rel.from_table == "table1" for rel in result.relationships))
        self.assertEqual({rel.to_table for rel in result.relationships}, {"customers", "order"})

    def test_fallback_documentation_note(self) -> None:
        result = self.parser.parse("The design needs documentation of every table's purpose.")

        self.assertTrue(result.notes)
        self.assertTrue(result.notes[0].content.startswith("Documentation:"))

    def test_fallback_note_needs_more_than_twenty_characters(self) -> None:
        # "Documentation:  note" is exactly 20 characters.
        self.assertEqual(self.parser.parse("note").notes, [])

        kept = self.parser.parse("note it")

        self.assertEqual([note.content for note in kept.notes], ["Documentation:  note it"])

    def test_fallback_is_skipped_when_regex_stages_found_something(self) -> None:
        result = self.parser.parse("link posts to users; customers and orders matter too")

        self.assertEqual(result.tables, [])
        self.assertEqual(len(result.relationships), 1)

    def test_actionable_and_general_advice_checks(self) -> None:
        self.assertTrue(self.parser.has_actionable_suggestions("You could ADD an index on email"))
        self.assertFalse(self.parser.has_actionable_suggestions("Looks fine to me."))
        self.assertTrue(self.parser.contains_general_advice("Consider normalising this"))
        self.assertFalse(self.parser.contains_general_advice(""))

    def test_never_raises_on_odd_input(self) -> None:
        for text in ("```json\n```", "```json\n[1, 2]\n```", "((((", "CREATE TABLE (", "\x00" * 10):
            self.parser.parse(text)


if __name__ == "__main__":
    unittest.main()
