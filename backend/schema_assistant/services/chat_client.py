"""OpenAI-compatible chat completions client with a three-way error taxonomy."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from schema_assistant.config import Settings
from schema_assistant.schemas.chat import AIConfig, ConnectionTestResult

logger = logging.getLogger(__name__)

CONNECTION_PROBE = "Hello, this is a connection test."
NETWORK_ERROR_MESSAGE = (
    "Network error: Unable to connect to the chat completion endpoint. "
    "Please check your endpoint URL and internet connection."
)


class CompletionError(RuntimeError):
    """Raised when a completion call fails; ``code`` names the failure class."""

    code = "completion-error"


class ServerError(CompletionError):
    """The endpoint answered with a non-2xx status or an unusable body."""

    code = "server-error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(CompletionError):
    """No response was received, including timeouts."""

    code = "network-error"


class RequestError(CompletionError):
    """The request could not be built or sent from local state."""

    code = "request-error"


@dataclass(slots=True)
class CompletionResult:
    content: str
    usage: dict[str, Any] | None = None


class ChatCompletionClient(Protocol):
    """Protocol for chat completion providers."""

    def complete(self, messages: list[dict[str, str]]) -> CompletionResult:
        """Return assistant text for the provided conversation."""

    def test_connection(self) -> ConnectionTestResult:
        """Send a minimal probe and report whether the endpoint answered."""


@dataclass(slots=True)
class OpenAICompatibleChatClient:
    """Minimal chat completions client using stdlib HTTP."""

    endpoint: str
    api_key: str
    model: str = "gpt-3.5-turbo"
    timeout_seconds: int = 30
    temperature: float = 0.7
    max_tokens: int = 2000

    @property
    def url(self) -> str:
        base = self.endpoint.strip().rstrip("/")
        if base.endswith("/v1"):
            return f"{base}/chat/completions"
        return f"{base}/v1/chat/completions"

    def complete(self, messages: list[dict[str, str]]) -> CompletionResult:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }
        decoded = self._post(payload)
        try:
            content = decoded["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError("assistant message content is not a string")
        except (KeyError, IndexError, TypeError) as exc:
            raise ServerError("API Error: unexpected chat completion response") from exc

        usage = decoded.get("usage")
        return CompletionResult(content=content, usage=usage if isinstance(usage, dict) else None)

    def test_connection(self) -> ConnectionTestResult:
        if not self.endpoint.strip() or not self.api_key.strip():
            return ConnectionTestResult(
                success=False,
                error="Connection failed: endpoint and API key are required",
                code=RequestError.code,
            )

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": CONNECTION_PROBE}],
            "max_tokens": 10,
        }
        try:
            self._post(payload)
        except CompletionError as exc:
            logger.warning("chat.connection_test_failed code=%s error=%s", exc.code, exc)
            return ConnectionTestResult(success=False, error=f"Connection failed: {exc}", code=exc.code)
        return ConnectionTestResult(success=True, message="Connection successful")

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` and return the decoded JSON object.

        ``timeout_seconds`` bounds each socket operation, not the whole call,
        so a server that keeps trickling bytes can hold the request longer.
        """

        if not self.endpoint.strip():
            raise RequestError("Request error: endpoint is not configured")
        try:
            body = json.dumps(payload).encode("utf-8")
            req = urllib_request.Request(
                url=self.url,
                data=body,
                method="POST",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        except (TypeError, ValueError) as exc:
            raise RequestError(f"Request error: {exc}") from exc

        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
                status = resp.status
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ServerError(
                f"API Error: {exc.code} - {_error_detail(detail, exc.reason)}",
                status_code=exc.code,
            ) from exc
        except (urllib_error.URLError, TimeoutError, OSError) as exc:
            raise NetworkError(NETWORK_ERROR_MESSAGE) from exc
        except ValueError as exc:
            raise RequestError(f"Request error: {exc}") from exc

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ServerError("API Error: response was not valid JSON", status_code=status) from exc
        if not isinstance(decoded, dict):
            raise ServerError("API Error: response was not a JSON object", status_code=status)
        return decoded


def _error_detail(body: str, reason: Any) -> str:
    """Prefer ``error.message`` from a JSON error body, then the HTTP reason."""

    try:
        decoded = json.loads(body)
    except json.JSONDecodeError:
        decoded = None
    if isinstance(decoded, dict):
        error = decoded.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error.strip():
            return error
    return str(reason or body or "Unknown error")


def build_chat_client(config: AIConfig, settings: Settings) -> OpenAICompatibleChatClient:
    """Return a client for ``config`` using the request tuning from ``settings``."""

    if not config.endpoint.strip():
        raise RequestError("Request error: AI endpoint is not configured")
    return OpenAICompatibleChatClient(
        endpoint=config.endpoint,
        api_key=config.api_key.get_secret_value() if config.api_key is not None else "",
        model=config.model,
        timeout_seconds=settings.ai_timeout_seconds,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
    )
