"""Tests for the chat completions client error mapping."""

from __future__ import annotations

import io
import json
import unittest
from unittest import mock
from urllib import error as urllib_error

from schema_assistant.config import Settings
from schema_assistant.schemas.chat import AIConfig
from schema_assistant.services.chat_client import (
    NetworkError,
    OpenAICompatibleChatClient,
    RequestError,
    ServerError,
    build_chat_client,
)

_URLOPEN = "schema_assistant.services.chat_client.urllib_request.urlopen"


class _FakeResponse:
    def __init__(self, payload: object, status: int = 200) -> None:
        self._body = json.dumps(payload).encode("utf-8") if not isinstance(payload, bytes) else payload
        self.status = status

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


def _http_error(status: int, body: str) -> urllib_error.HTTPError:
    return urllib_error.HTTPError("http://llm.test", status, "Bad Gateway", {}, io.BytesIO(body.encode("utf-8")))


class ChatClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = OpenAICompatibleChatClient(endpoint="http://llm.test/", api_key="sk-test", model="m1")

    def test_complete_posts_expected_payload(self) -> None:
        reply = {"choices": [{"message": {"content": "Hi"}}], "usage": {"total_tokens": 7}}
        with mock.patch(_URLOPEN, return_value=_FakeResponse(reply)) as urlopen:
            result = self.client.complete([{"role": "user", "content": "Hello"}])

        self.assertEqual(result.content, "Hi")
        self.assertEqual(result.usage, {"total_tokens": 7})
        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "http://llm.test/v1/chat/completions")
        self.assertEqual(request.get_header("Authorization"), "Bearer sk-test")
        self.assertEqual(urlopen.call_args.kwargs["timeout"], 30)
        body = json.loads(request.data.decode("utf-8"))
        self.assertEqual(body["model"], "m1")
        self.assertEqual(body["temperature"], 0.7)
        self.assertEqual(body["max_tokens"], 2000)
        self.assertIs(body["stream"], False)

    def test_endpoint_with_version_suffix_is_not_doubled(self) -> None:
        client = OpenAICompatibleChatClient(endpoint="https://proxy.test/v1", api_key="k")

        self.assertEqual(client.url, "https://proxy.test/v1/chat/completions")

    def test_non_2xx_maps_to_server_error_with_message(self) -> None:
        error = _http_error(429, json.dumps({"error": {"message": "Rate limit reached"}}))
        with mock.patch(_URLOPEN, side_effect=error):
            with self.assertRaises(ServerError) as ctx:
                self.client.complete([])

        self.assertEqual(ctx.exception.code, "server-error")
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(str(ctx.exception), "API Error: 429 - Rate limit reached")

    def test_unreachable_endpoint_maps_to_network_error(self) -> None:
        for failure in (urllib_error.URLError("refused"), TimeoutError("timed out")):
            with mock.patch(_URLOPEN, side_effect=failure):
                with self.assertRaises(NetworkError) as ctx:
                    self.client.complete([])
            self.assertEqual(ctx.exception.code, "network-error")

    def test_unexpected_body_maps_to_server_error(self) -> None:
        with mock.patch(_URLOPEN, return_value=_FakeResponse({"choices": []})):
            with self.assertRaises(ServerError):
                self.client.complete([])

    def test_missing_endpoint_is_a_request_error(self) -> None:
        client = OpenAICompatibleChatClient(endpoint=" ", api_key="k")
        with mock.patch(_URLOPEN) as urlopen:
            with self.assertRaises(RequestError):
                client.complete([])
        urlopen.assert_not_called()

    def test_connection_probe_uses_small_token_limit(self) -> None:
        with mock.patch(_URLOPEN, return_value=_FakeResponse({"choices": []})) as urlopen:
            result = self.client.test_connection()

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Connection successful")
        body = json.loads(urlopen.call_args.args[0].data.decode("utf-8"))
        self.assertEqual(body["max_tokens"], 10)

    def test_connection_probe_requires_key(self) -> None:
        client = OpenAICompatibleChatClient(endpoint="http://llm.test", api_key="")
        with mock.patch(_URLOPEN) as urlopen:
            result = client.test_connection()

        self.assertFalse(result.success)
        self.assertEqual(result.code, "request-error")
        urlopen.assert_not_called()

    def test_connection_probe_reports_server_failure(self) -> None:
        with mock.patch(_URLOPEN, side_effect=_http_error(401, "denied")):
            result = self.client.test_connection()

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Connection failed: API Error: 401 - Bad Gateway")

    def test_build_chat_client_uses_settings_tuning(self) -> None:
        settings = Settings(_env_file=None, ai_timeout_seconds=5, ai_max_tokens=50)
        client = build_chat_client(AIConfig(endpoint="http://llm.test", api_key="secret", model="m2"), settings)

        self.assertEqual(client.api_key, "secret")
        self.assertEqual(client.timeout_seconds, 5)
        self.assertEqual(client.max_tokens, 50)
        with self.assertRaises(RequestError):
            build_chat_client(AIConfig(endpoint=""), settings)


if __name__ == "__main__":
    unittest.main()
