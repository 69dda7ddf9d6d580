"""Schemas for chat session endpoints and assistant configuration."""

from typing import Any, Literal

from pydantic import Field, SecretStr

from schema_assistant.schemas.diagram import DiagramModel, DiagramState
from schema_assistant.schemas.message import ChatMessage

SessionStateName = Literal["idle", "sending", "error"]


class AIConfig(DiagramModel):
    """Remote completion configuration for the current process."""

    enabled: bool = True
    endpoint: str = ""
    api_key: SecretStr | None = None
    model: str = "gpt-3.5-turbo"

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value().strip())

    def to_storage(self) -> dict[str, Any]:
        """Return the persisted representation, secret included."""

        return {
            "enabled": self.enabled,
            "endpoint": self.endpoint,
            "apiKey": self.api_key.get_secret_value() if self.api_key is not None else "",
            "model": self.model,
        }


class AIConfigRead(DiagramModel):
    """Configuration as exposed over HTTP; the key itself is never returned."""

    enabled: bool
    endpoint: str
    model: str
    has_api_key: bool

    @classmethod
    def from_config(cls, config: AIConfig) -> "AIConfigRead":
        return cls(
            enabled=config.enabled,
            endpoint=config.endpoint,
            model=config.model,
            has_api_key=config.has_api_key,
        )


class AIConfigUpdate(DiagramModel):
    """Partial configuration update; omitted fields keep their value."""

    enabled: bool | None = None
    endpoint: str | None = None
    api_key: SecretStr | None = None
    model: str | None = Field(default=None, min_length=1)


class ConnectionTestResult(DiagramModel):
    """Outcome of a connection probe."""

    success: bool
    message: str | None = None
    error: str | None = None
    code: str | None = None


class ChatTurnRequest(DiagramModel):
    """One user turn plus the diagram it is about."""

    content: str = Field(min_length=1)
    diagram: DiagramState = Field(default_factory=DiagramState)


class ChatRetryRequest(DiagramModel):
    diagram: DiagramState = Field(default_factory=DiagramState)


class ChatTurnResult(DiagramModel):
    """Result of a send or retry; ``assistant_message`` is absent on failure."""

    user_message: ChatMessage
    assistant_message: ChatMessage | None = None
    error: str | None = None
    error_code: str | None = None
    usage: dict[str, Any] | None = None
    actionable: bool = False


class ChatSessionView(DiagramModel):
    """Snapshot of the session state machine and its log."""

    state: SessionStateName
    error: str | None = None
    error_code: str | None = None
    has_pending_request: bool = False
    messages: list[ChatMessage] = Field(default_factory=list)


class ChatApplyRequest(DiagramModel):
    """Apply suggestions found in an assistant message to a diagram."""

    content: str
    diagram: DiagramState = Field(default_factory=DiagramState)


class HistoryImportRequest(DiagramModel):
    """Replacement log, either as exported JSON text or as message objects."""

    content: str | None = None
    messages: list[dict[str, Any]] | None = None


class HistoryExport(DiagramModel):
    content: str
    message_count: int
