"""Chat message schemas."""

import random
import time
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator

from schema_assistant.schemas.diagram import DiagramModel

MessageRole = Literal["user", "ai"]


def new_message_id() -> str:
    """Return an id derived from the current time plus a random suffix."""

    return f"{time.time_ns()}-{random.getrandbits(32):08x}"


class ChatMessage(DiagramModel):
    """Immutable entry in the conversation log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id, min_length=1)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("id", mode="before")
    @classmethod
    def _numeric_id_to_text(cls, value: Any) -> Any:
        # Older exports used numeric ids.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value
