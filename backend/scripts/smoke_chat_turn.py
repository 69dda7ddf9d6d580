"""Run one real chat turn against a small demo diagram and print the parsed suggestions.

Requires AI_ENDPOINT and AI_API_KEY in the environment or backend/.env.

Usage (from repo root):
    python backend/scripts/smoke_chat_turn.py

Usage (from backend/):
    python scripts/smoke_chat_turn.py --prompt "Suggest missing tables"
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from schema_assistant.extraction.response_parser import parse_response
from schema_assistant.schemas.diagram import DiagramField, DiagramRelationship, DiagramState, DiagramTable
from schema_assistant.services.chat_session import ChatSession
from schema_assistant.services.storage import InMemoryKeyValueStore


def _demo_diagram() -> DiagramState:
    users = DiagramTable(
        id="t-users",
        name="users",
        x=100,
        y=100,
        fields=[
            DiagramField(id="f-users-id", name="id", type="INTEGER", primary=True, not_null=True, increment=True),
            DiagramField(id="f-users-email", name="email", type="VARCHAR(255)", unique=True, not_null=True),
        ],
    )
    posts = DiagramTable(
        id="t-posts",
        name="posts",
        x=400,
        y=100,
        fields=[
            DiagramField(id="f-posts-id", name="id", type="INTEGER", primary=True, not_null=True, increment=True),
            DiagramField(id="f-posts-user", name="user_id", type="INTEGER", not_null=True),
            DiagramField(id="f-posts-title", name="title", type="VARCHAR(200)"),
        ],
    )
    return DiagramState(
        database="postgresql",
        tables=[users, posts],
        relationships=[
            DiagramRelationship(
                id="r-posts-users",
                start_table_id="t-posts",
                end_table_id="t-users",
                start_field_id="f-posts-user",
                end_field_id="f-users-id",
            )
        ],
    )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--prompt",
        default="Review this blog schema and suggest specific missing tables and relationships.",
    )
    args = parser.parse_args()

    session = ChatSession(InMemoryKeyValueStore())
    result = session.send(args.prompt, _demo_diagram())
    if result is None or result.assistant_message is None:
        print(json.dumps({"error": result.error if result else "busy", "code": result.error_code if result else None}))
        raise SystemExit(1)

    suggestions = parse_response(result.assistant_message.content)
    print(
        json.dumps(
            {
                "usage": result.usage,
                "actionable": result.actionable,
                "suggestions": suggestions.model_dump(by_alias=True),
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
