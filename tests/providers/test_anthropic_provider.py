# tests/providers/test_anthropic_provider.py
"""
Tests for AnthropicProvider with a stubbed SDK client.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from bosschat.exceptions import ProviderError
from bosschat.models import Role, Turn
from bosschat.providers import AnthropicProvider

API_URL = "https://api.anthropic.com/v1/messages"


class FakeMessageStream:
    """Stands in for the SDK's MessageStreamManager / MessageStream pair."""

    def __init__(self, texts, error=None):
        self.texts = texts
        self.error = error
        self.exited = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        return False

    @property
    def text_stream(self):
        return self._iterate()

    async def _iterate(self):
        for text in self.texts:
            yield text
        if self.error is not None:
            raise self.error


def _status_error(status_code: int) -> anthropic.APIStatusError:
    response = httpx.Response(status_code, request=httpx.Request("POST", API_URL))
    return anthropic.APIStatusError("upstream said no", response=response, body=None)


def _provider(stream=None, create_result=None, create_error=None):
    client = MagicMock()
    client.messages.stream = MagicMock(return_value=stream)
    client.messages.create = AsyncMock(return_value=create_result, side_effect=create_error)
    client.close = AsyncMock()
    return AnthropicProvider(client=client, default_model="claude-sonnet-4-5", default_max_tokens=4096), client


async def _drain(provider, turns):
    return [chunk async for chunk in provider.stream_text("be helpful", turns)]


USER_TURN = [Turn(role=Role.USER, content="Hello")]


class TestTurnConversion:

    def test_leading_assistant_turns_dropped_and_runs_merged(self):
        provider, _ = _provider()
        turns = [
            Turn(role=Role.ASSISTANT, content="cut-off reply"),
            Turn(role=Role.USER, content="a"),
            Turn(role=Role.USER, content="b"),
            Turn(role=Role.ASSISTANT, content="c"),
        ]

        assert provider._convert_turns(turns) == [
            {"role": "user", "content": "a\n\nb"},
            {"role": "assistant", "content": "c"},
        ]

    def test_no_user_turn_is_an_error(self):
        provider, _ = _provider()

        with pytest.raises(ProviderError):
            provider._request_kwargs("sys", [Turn(role=Role.ASSISTANT, content="x")], None, None)


class TestStreaming:

    async def test_text_chunks_are_relayed(self):
        stream = FakeMessageStream(["Hi", "", " there"])
        provider, client = _provider(stream=stream)

        chunks = await _drain(provider, USER_TURN)

        assert chunks == ["Hi", " there"]
        assert stream.exited

    async def test_request_disables_thinking_and_sends_system_prompt(self):
        provider, client = _provider(stream=FakeMessageStream(["ok"]))

        await _drain(provider, USER_TURN)

        kwargs = client.messages.stream.call_args.kwargs
        assert kwargs["thinking"] == {"type": "disabled"}
        assert kwargs["system"] == "be helpful"
        assert kwargs["model"] == "claude-sonnet-4-5"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]

    async def test_status_error_carries_status_code(self):
        provider, _ = _provider(stream=FakeMessageStream([], error=_status_error(429)))

        with pytest.raises(ProviderError) as excinfo:
            await _drain(provider, USER_TURN)

        assert excinfo.value.status_code == 429

    async def test_connection_error_has_no_status(self):
        error = anthropic.APIConnectionError(request=httpx.Request("POST", API_URL))
        provider, _ = _provider(stream=FakeMessageStream(["partial"], error=error))

        with pytest.raises(ProviderError) as excinfo:
            await _drain(provider, USER_TURN)

        assert excinfo.value.status_code is None


class TestComplete:

    async def test_complete_joins_text_blocks(self):
        result = SimpleNamespace(content=[
            SimpleNamespace(type="text", text="Line one\n"),
            SimpleNamespace(type="text", text="Line two "),
        ])
        provider, client = _provider(create_result=result)

        text = await provider.complete("summarize", USER_TURN, model="claude-haiku-4-5", max_tokens=300)

        assert text == "Line one\nLine two"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-haiku-4-5"
        assert kwargs["max_tokens"] == 300

    async def test_complete_status_error(self):
        provider, _ = _provider(create_error=_status_error(500))

        with pytest.raises(ProviderError) as excinfo:
            await provider.complete("summarize", USER_TURN)

        assert excinfo.value.status_code == 500

    async def test_close_closes_client(self):
        provider, client = _provider()

        await provider.close()

        client.close.assert_awaited_once()
