# tests/test_relay.py
"""
Tests for CompletionRelay: frame sequence, error mapping and lifecycle.
"""

from typing import List

import pytest

from bosschat import sse
from bosschat.exceptions import ProviderError, RelayStateError
from bosschat.models import Role, Turn
from bosschat.relay import (AUTH_FAILED_MESSAGE, GENERIC_ERROR_MESSAGE,
                            RATE_LIMITED_MESSAGE, SERVER_ERROR_MESSAGE,
                            CompletionRelay, RelayState, error_message_for)

from .fakes import FakeProvider

HISTORY = [Turn(role=Role.USER, content="Hello")]


async def _collect(relay: CompletionRelay, **kwargs) -> List[dict]:
    frames = [frame async for frame in relay.stream_chat("system", HISTORY, **kwargs)]
    return sse.parse_frames("".join(frames))


class TestSuccessfulRelay:

    async def test_frame_sequence_for_two_chunks(self):
        relay = CompletionRelay(FakeProvider(chunks=["Hi", " there"]))

        events = await _collect(relay)

        assert events == [
            {"type": "start"},
            {"type": "delta", "text": "Hi"},
            {"type": "delta", "text": " there"},
            {"type": "done"},
        ]
        assert relay.state == RelayState.DONE
        assert relay.text == "Hi there"

    async def test_empty_reply_is_start_then_done(self):
        relay = CompletionRelay(FakeProvider(chunks=[]))

        events = await _collect(relay)

        assert [e["type"] for e in events] == ["start", "done"]

    async def test_done_hook_receives_full_text_before_done_frame(self):
        seen = []
        relay = CompletionRelay(FakeProvider(chunks=["a", "b", "c"]))

        stream = relay.stream_chat("system", HISTORY, on_done=seen.append)
        frames = [frame async for frame in stream]

        assert seen == ["abc"]
        assert sse.parse_frames(frames[-1]) == [{"type": "done"}]

    async def test_done_hook_failure_does_not_break_stream(self):
        def broken_hook(text):
            raise RuntimeError("bookkeeping failed")

        relay = CompletionRelay(FakeProvider())

        events = await _collect(relay, on_done=broken_hook)

        assert events[-1] == {"type": "done"}

    async def test_only_history_window_is_sent(self):
        provider = FakeProvider()
        history = [Turn(role=Role.USER, content=str(i)) for i in range(50)]
        relay = CompletionRelay(provider, history_window=40)

        [frame async for frame in relay.stream_chat("system", history)]

        sent = provider.stream_calls[0]["turns"]
        assert len(sent) == 40
        assert sent[0].content == "10"

    async def test_model_and_max_tokens_forwarded(self):
        provider = FakeProvider()
        relay = CompletionRelay(provider, model="claude-sonnet-4-5", max_tokens=512)

        await _collect(relay)

        assert provider.stream_calls[0]["model"] == "claude-sonnet-4-5"
        assert provider.stream_calls[0]["max_tokens"] == 512
        assert provider.stream_calls[0]["system_prompt"] == "system"


class TestRelayErrors:

    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (429, RATE_LIMITED_MESSAGE),
            (401, AUTH_FAILED_MESSAGE),
            (500, SERVER_ERROR_MESSAGE),
            (529, SERVER_ERROR_MESSAGE),
            (400, GENERIC_ERROR_MESSAGE),
            (None, GENERIC_ERROR_MESSAGE),
        ],
    )
    def test_error_message_categories(self, status_code, expected):
        assert error_message_for(ProviderError("fake", "boom", status_code=status_code)) == expected

    def test_non_provider_errors_are_generic(self):
        assert error_message_for(RuntimeError("boom")) == GENERIC_ERROR_MESSAGE

    async def test_failure_before_first_chunk(self):
        relay = CompletionRelay(FakeProvider(error=ProviderError("fake", "slow down", status_code=429)))

        events = await _collect(relay)

        assert events == [{"type": "start"}, {"type": "error", "message": RATE_LIMITED_MESSAGE}]
        assert relay.state == RelayState.ERRORED

    async def test_failure_mid_stream_ends_with_error_and_no_done(self):
        relay = CompletionRelay(FakeProvider(chunks=["Hi", " there"], error=ProviderError("fake", "reset"), fail_after=1))
        done_calls = []

        events = await _collect(relay, on_done=done_calls.append)

        assert [e["type"] for e in events] == ["start", "delta", "error"]
        assert events[-1]["message"] == GENERIC_ERROR_MESSAGE
        assert done_calls == []

    async def test_unexpected_exception_becomes_error_frame(self):
        relay = CompletionRelay(FakeProvider(error=ValueError("bad chunk")))

        events = await _collect(relay)

        assert events[-1] == {"type": "error", "message": GENERIC_ERROR_MESSAGE}

    async def test_error_hook_called_with_exception(self):
        error = ProviderError("fake", "down", status_code=503)
        seen = []
        relay = CompletionRelay(FakeProvider(error=error))

        await _collect(relay, on_error=seen.append)

        assert seen == [error]


class TestRelayLifecycle:

    async def test_relay_is_one_shot(self):
        relay = CompletionRelay(FakeProvider())
        await _collect(relay)

        with pytest.raises(RelayStateError):
            await _collect(relay)

    async def test_client_disconnect_releases_upstream_without_terminal_frame(self):
        provider = FakeProvider(chunks=["a", "b", "c"])
        relay = CompletionRelay(provider)
        probes = iter([False, True])

        async def is_disconnected():
            return next(probes)

        done_calls = []
        events = await _collect(relay, on_done=done_calls.append, is_disconnected=is_disconnected)

        assert events == [{"type": "start"}, {"type": "delta", "text": "a"}]
        assert relay.state == RelayState.ERRORED
        assert provider.aborted is True
        assert done_calls == []


class TestFrames:

    def test_newlines_stay_inside_one_data_line(self):
        frame = sse.delta_frame("line one\nline two")

        assert frame.count("\n") == 2
        assert frame.endswith("\n\n")
        assert sse.parse_frames(frame) == [{"type": "delta", "text": "line one\nline two"}]

    def test_non_ascii_text_is_sent_verbatim(self):
        assert "안녕" in sse.delta_frame("안녕")
