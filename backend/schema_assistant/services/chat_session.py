"""Chat session: turn-taking state machine over a persisted conversation log.

A session owns the message log and the assistant configuration, both
persisted through an injected :class:`KeyValueStore`. At most one completion
request is in flight; a second ``send`` while sending is ignored. Failures
leave the user message in the log and keep it pending so ``retry`` can
re-issue the same request. Clearing or replacing the log invalidates any
response still in flight.
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from schema_assistant.config import Settings, get_settings
from schema_assistant.extraction.response_parser import ResponseParser
from schema_assistant.schemas.chat import (
    AIConfig,
    AIConfigUpdate,
    ChatSessionView,
    ChatTurnResult,
    ConnectionTestResult,
)
from schema_assistant.schemas.diagram import DiagramState
from schema_assistant.schemas.message import ChatMessage
from schema_assistant.services.chat_client import (
    ChatCompletionClient,
    CompletionError,
    RequestError,
    build_chat_client,
)
from schema_assistant.services.context_builder import build_diagram_context
from schema_assistant.services.diagram_editor import DiagramEditor
from schema_assistant.services.prompts import build_system_prompt
from schema_assistant.services.storage import (
    AI_CONFIG_KEY,
    CHAT_HISTORY_KEY,
    InMemoryKeyValueStore,
    KeyValueStore,
    StorageError,
)
from schema_assistant.services.suggestion_applier import ApplyResult, apply_suggestions

logger = logging.getLogger(__name__)

_MESSAGE_LIST = TypeAdapter(list[ChatMessage])

STALE_RESPONSE_CODE = "stale-response"
GENERIC_FAILURE_MESSAGE = "Failed to send message. Please check your connection and try again."
GENERAL_ADVICE_HINT = (
    "I found general advice in the response, but no specific suggestions that can be "
    "automatically applied. Try asking more specifically:\n\n"
    "• 'Suggest specific tables to add to improve this design'\n"
    "• 'What tables are missing for user authentication?'\n"
    "• 'Recommend specific relationships between orders and other tables'\n"
    "• 'Add a user profile system with specific tables'\n"
    "• 'Add a spec document about the database design'\n"
    "• 'Create a note explaining the schema structure'"
)
NO_SUGGESTIONS_HINT = (
    "No actionable suggestions found in the response. For design reviews, try asking for "
    "specific improvements like 'suggest specific tables to add' or 'recommend specific relationships'."
)

ClientFactory = Callable[[AIConfig, Settings], ChatCompletionClient]


class ChatSessionError(RuntimeError):
    """Raised when a session operation's local preconditions are not met."""


class SessionState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    ERROR = "error"


@dataclass(slots=True)
class ChatApplyOutcome:
    """Apply result plus the summary messages appended to the log."""

    result: ApplyResult
    messages: list[ChatMessage] = field(default_factory=list)


class ChatSession:
    """Explicit conversation state with injected persistence and completion client."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        settings: Settings | None = None,
        client_factory: ClientFactory = build_chat_client,
        parser: ResponseParser | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._client_factory = client_factory
        self._parser = parser or ResponseParser()
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._error: str | None = None
        self._error_code: str | None = None
        self._pending: ChatMessage | None = None
        self._token = 0
        self._storage_degraded = False
        self._messages: list[ChatMessage] = self._load_history()
        self._config: AIConfig = self._load_config()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def config(self) -> AIConfig:
        return self._config

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def storage_degraded(self) -> bool:
        return self._storage_degraded

    def view(self) -> ChatSessionView:
        with self._lock:
            return ChatSessionView(
                state=self._state.value,
                error=self._error,
                error_code=self._error_code,
                has_pending_request=self._pending is not None,
                messages=list(self._messages),
            )

    def send(self, content: str, diagram: DiagramState | Mapping[str, Any]) -> ChatTurnResult | None:
        """Append a user message and request a reply; returns ``None`` if a request is in flight."""

        trimmed = (content or "").strip()
        if not trimmed:
            raise ChatSessionError("Message content cannot be empty.")
        state = self._coerce_diagram(diagram)

        with self._lock:
            if self._state is SessionState.SENDING:
                logger.info("chat.send_ignored reason=busy")
                return None
            user_message = ChatMessage(role="user", content=trimmed)
            self._append(user_message)
            self._begin(user_message)
            token = self._token

        return self._complete(user_message, state, token)

    def retry(self, diagram: DiagramState | Mapping[str, Any]) -> ChatTurnResult | None:
        """Re-issue the last failed request without appending a new user message."""

        state = self._coerce_diagram(diagram)
        with self._lock:
            if self._state is SessionState.SENDING:
                logger.info("chat.retry_ignored reason=busy")
                return None
            if self._pending is None:
                raise ChatSessionError("There is no failed request to retry.")
            user_message = self._pending
            self._begin(user_message)
            token = self._token

        return self._complete(user_message, state, token)

    def clear_error(self) -> None:
        with self._lock:
            if self._state is SessionState.ERROR:
                self._state = SessionState.IDLE
            self._error = None
            self._error_code = None

    def clear_history(self) -> None:
        """Empty the log and invalidate any in-flight response."""

        with self._lock:
            self._messages = []
            self._reset_turn_state()
            self._delete(CHAT_HISTORY_KEY)
        logger.info("chat.history_cleared")

    def export_history(self) -> str:
        return json.dumps([message.model_dump(mode="json", by_alias=True) for message in self._messages], indent=2)

    def import_history(self, payload: str | list[Any]) -> list[ChatMessage]:
        """Replace the log; an invalid payload leaves the current log untouched."""

        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                raise ChatSessionError(f"Chat history is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise ChatSessionError("Chat history must be a list of messages.")
        try:
            imported = _MESSAGE_LIST.validate_python(payload)
        except ValidationError as exc:
            raise ChatSessionError(f"Chat history contains invalid messages: {exc.error_count()} error(s)") from exc

        with self._lock:
            self._messages = list(imported)
            self._reset_turn_state()
            self._persist_history()
        logger.info("chat.history_imported count=%d", len(imported))
        return list(imported)

    def update_config(self, update: AIConfigUpdate) -> AIConfig:
        changes = {key: value for key, value in update.model_dump(exclude_unset=True).items() if value is not None}
        with self._lock:
            self._config = self._config.model_copy(update=changes)
            self._save(AI_CONFIG_KEY, json.dumps(self._config.to_storage()))
        logger.info("chat.config_updated fields=%s", ",".join(sorted(changes)))
        return self._config

    def test_connection(self) -> ConnectionTestResult:
        """Probe the configured endpoint; missing endpoint or key fails without a call."""

        config = self._config
        if not config.endpoint.strip() or not config.has_api_key:
            return ConnectionTestResult(
                success=False,
                error="Connection failed: endpoint and API key are required",
                code=RequestError.code,
            )
        try:
            client = self._client_factory(config, self._settings)
        except CompletionError as exc:
            return ConnectionTestResult(success=False, error=f"Connection failed: {exc}", code=exc.code)
        return client.test_connection()

    def apply_suggestions(self, content: str, editor: DiagramEditor) -> ChatApplyOutcome:
        """Parse ``content``, apply what resolves, and log summary messages."""

        result = apply_suggestions(self._parser.parse(content), editor)

        notices: list[ChatMessage] = []
        if result.applied_count > 0:
            notices.append(
                ChatMessage(
                    role="ai",
                    content=f"✅ Successfully applied {result.applied_count} suggestions to the diagram!",
                )
            )
        if result.errors:
            notices.append(
                ChatMessage(
                    role="ai",
                    content="⚠️ Some suggestions could not be applied:\n" + "\n".join(result.errors),
                )
            )
        if result.applied_count == 0 and not result.errors:
            hint = GENERAL_ADVICE_HINT if self._parser.contains_general_advice(content) else NO_SUGGESTIONS_HINT
            notices.append(ChatMessage(role="ai", content=hint))

        with self._lock:
            for notice in notices:
                self._append(notice)
        return ChatApplyOutcome(result=result, messages=notices)

    def _complete(self, user_message: ChatMessage, diagram: DiagramState, token: int) -> ChatTurnResult:
        try:
            if not self._config.enabled:
                raise RequestError("Request error: AI assistant is disabled")
            context = build_diagram_context(diagram)
            messages = self._build_chat_messages(user_message, build_system_prompt(context))
            completion = self._client_factory(self._config, self._settings).complete(messages)
        except CompletionError as exc:
            return self._fail(user_message, token, exc)
        except Exception:
            logger.exception("chat.turn_crashed")
            return self._fail(user_message, token, RequestError(GENERIC_FAILURE_MESSAGE))

        with self._lock:
            if token != self._token:
                return self._stale(user_message)
            assistant_message = ChatMessage(role="ai", content=completion.content)
            self._append(assistant_message)
            self._state = SessionState.IDLE
            self._pending = None

        logger.info("chat.turn_completed chars=%d", len(completion.content))
        return ChatTurnResult(
            user_message=user_message,
            assistant_message=assistant_message,
            usage=completion.usage,
            actionable=self._parser.has_actionable_suggestions(completion.content),
        )

    def _fail(self, user_message: ChatMessage, token: int, exc: CompletionError) -> ChatTurnResult:
        with self._lock:
            if token != self._token:
                return self._stale(user_message)
            self._state = SessionState.ERROR
            self._error = str(exc)
            self._error_code = exc.code
        logger.warning("chat.turn_failed code=%s error=%s", exc.code, exc)
        return ChatTurnResult(user_message=user_message, error=str(exc), error_code=exc.code)

    @staticmethod
    def _stale(user_message: ChatMessage) -> ChatTurnResult:
        logger.info("chat.stale_response_discarded message_id=%s", user_message.id)
        return ChatTurnResult(
            user_message=user_message,
            error="Response discarded because the conversation was reset.",
            error_code=STALE_RESPONSE_CODE,
        )

    def _build_chat_messages(self, user_message: ChatMessage, system_prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = [{"role": "system", "content": system_prompt}]

        history = self._messages
        for index, message in enumerate(history):
            if message.id == user_message.id:
                history = history[:index]
                break
        limit = max(self._settings.ai_history_limit, 0)
        for message in history[-limit:] if limit else []:
            content = message.content.strip()
            if not content:
                continue
            messages.append({"role": "assistant" if message.role == "ai" else "user", "content": content})

        messages.append({"role": "user", "content": user_message.content})
        return messages

    def _begin(self, user_message: ChatMessage) -> None:
        self._state = SessionState.SENDING
        self._pending = user_message
        self._error = None
        self._error_code = None

    def _reset_turn_state(self) -> None:
        self._token += 1
        self._state = SessionState.IDLE
        self._pending = None
        self._error = None
        self._error_code = None

    @staticmethod
    def _coerce_diagram(diagram: DiagramState | Mapping[str, Any]) -> DiagramState:
        if isinstance(diagram, DiagramState):
            return diagram
        try:
            return DiagramState.model_validate(diagram)
        except ValidationError as exc:
            raise ChatSessionError(f"Invalid diagram state: {exc.error_count()} error(s)") from exc

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._persist_history()

    def _persist_history(self) -> None:
        self._save(
            CHAT_HISTORY_KEY,
            json.dumps([message.model_dump(mode="json", by_alias=True) for message in self._messages]),
        )

    def _load_history(self) -> list[ChatMessage]:
        raw = self._load(CHAT_HISTORY_KEY)
        if raw is None:
            return []
        try:
            return list(_MESSAGE_LIST.validate_json(raw))
        except ValidationError as exc:
            logger.warning("chat.history_corrupt errors=%d", exc.error_count())
            return []

    def _load_config(self) -> AIConfig:
        defaults = AIConfig(
            enabled=self._settings.ai_enabled,
            endpoint=self._settings.ai_endpoint,
            api_key=self._settings.ai_api_key,
            model=self._settings.ai_model,
        )
        raw = self._load(AI_CONFIG_KEY)
        if raw is None:
            return defaults
        try:
            stored = json.loads(raw)
            if not isinstance(stored, dict):
                raise ValueError("stored config is not an object")
            return AIConfig.model_validate({**defaults.to_storage(), **stored})
        except ValueError as exc:
            logger.warning("chat.config_corrupt error=%s", exc)
            return defaults

    def _load(self, key: str) -> str | None:
        try:
            return self._store.load(key)
        except StorageError:
            self._fall_back_to_memory()
            return None

    def _save(self, key: str, value: str) -> None:
        try:
            self._store.save(key, value)
        except StorageError:
            self._fall_back_to_memory()
            self._store.save(key, value)

    def _delete(self, key: str) -> None:
        try:
            self._store.delete(key)
        except StorageError:
            self._fall_back_to_memory()

    def _fall_back_to_memory(self) -> None:
        logger.exception("storage.fallback_in_memory")
        self._store = InMemoryKeyValueStore()
        self._storage_degraded = True
