"""System prompt assembly for assistant turns."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from schema_assistant.schemas.context import DiagramContext
from schema_assistant.services.chat_client import RequestError

SYSTEM_PROMPT_VERSION = "system.v1"
_PROMPT_FILES: dict[str, Path] = {
    "system.v1": Path(__file__).resolve().parents[1] / "prompts" / "system_v1.txt",
}


class PromptError(RequestError):
    """Raised when the system prompt file is missing or empty."""


@lru_cache(maxsize=8)
def get_system_instructions(version: str = SYSTEM_PROMPT_VERSION) -> str:
    prompt_file = _PROMPT_FILES.get(version)
    if prompt_file is None:
        raise PromptError(f"System prompt version is not registered: {version}")
    try:
        prompt_text = prompt_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise PromptError(f"Failed to load system prompt file: {prompt_file}") from exc
    if not prompt_text:
        raise PromptError(f"System prompt file is empty: {prompt_file}")
    return prompt_text


def build_system_prompt(context: DiagramContext, *, version: str = SYSTEM_PROMPT_VERSION) -> str:
    """Return the fixed instructions followed by a description of ``context``."""

    header = [
        "Current diagram context:",
        f"- Database type: {context.database}",
        f"- Tables: {len(context.tables)} tables",
        f"- Relationships: {len(context.relationships)} relationships",
        f"- Subject areas: {len(context.areas)} areas",
        f"- Notes: {len(context.notes)} notes",
    ]
    if context.types:
        header.append(f"- Custom types: {len(context.types)} types")
    if context.enums:
        header.append(f"- Enums: {len(context.enums)} enums")

    schema = context.model_dump(by_alias=True, include={"tables", "relationships"})
    return "\n".join(
        [
            get_system_instructions(version),
            "",
            *header,
            "",
            "Current schema details:",
            json.dumps(schema, indent=2),
        ]
    )
