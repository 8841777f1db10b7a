# tests/test_pipeline.py
"""
Integration tests for ChatPipeline: session updates, persistence of turn
pairs, the every-fifth-pair summary and prior-context priming.
"""

from typing import List, Optional

import pytest

from bosschat import sse
from bosschat.models import FormatMode
from bosschat.personas import get_persona
from bosschat.pipeline import ChatPipeline
from bosschat.sessions import SessionStore
from bosschat.summarization import Summarizer
from bosschat.tasks import BackgroundTasks

from .fakes import FakeProvider

pytestmark = pytest.mark.integration


def _pipeline(provider: FakeProvider, gateway=None) -> ChatPipeline:
    summarizer = Summarizer(provider, gateway, model="claude-haiku-4-5") if gateway is not None else None
    return ChatPipeline(
        provider,
        SessionStore(),
        BackgroundTasks(),
        summarizer=summarizer,
        gateway=gateway,
        chat_model="claude-sonnet-4-5",
    )


async def _exchange(
    pipeline: ChatPipeline,
    text: str,
    persona_id: str = "jia",
    session_id: str = "tab-1",
    user_id: Optional[str] = None,
    conversation_id: Optional[str] = None,
    format_mode=None,
) -> List[dict]:
    stream = await pipeline.open_stream(
        get_persona(persona_id),
        session_id,
        text,
        format_mode=format_mode,
        user_id=user_id,
        conversation_id=conversation_id,
    )
    body = "".join([frame async for frame in stream])
    await pipeline.tasks.drain()
    return sse.parse_frames(body)


class TestSessionFlow:

    async def test_reply_is_appended_to_session(self, fake_provider):
        pipeline = _pipeline(fake_provider)

        events = await _exchange(pipeline, "Hello")

        assert events[-1] == {"type": "done"}
        session = pipeline.sessions.get("tab-1")
        assert [t.role for t in session.turns] == ["user", "assistant"]
        assert session.last_turn.content == "Hi there"

    async def test_history_accumulates_across_requests(self, fake_provider):
        pipeline = _pipeline(fake_provider)

        await _exchange(pipeline, "first")
        await _exchange(pipeline, "second")

        sent = fake_provider.stream_calls[1]["turns"]
        assert [t.content for t in sent] == ["first", "Hi there", "second"]

    async def test_failed_reply_leaves_only_user_turn(self):
        from bosschat.exceptions import ProviderError

        pipeline = _pipeline(FakeProvider(error=ProviderError("fake", "down", status_code=500)))

        events = await _exchange(pipeline, "Hello")

        assert events[-1]["type"] == "error"
        assert [t.content for t in pipeline.sessions.get("tab-1").turns] == ["Hello"]

    async def test_plain_mode_reaches_system_prompt(self, fake_provider):
        pipeline = _pipeline(fake_provider)

        await _exchange(pipeline, "Hello", format_mode=FormatMode.PLAIN)

        assert "[Output format]" in fake_provider.stream_calls[0]["system_prompt"]


class TestPersistence:

    async def test_each_exchange_advances_counter_by_one(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)
        conversation = await gateway.create_conversation("u1", "jia", "t")

        await _exchange(pipeline, "one", user_id="u1", conversation_id=conversation.id)
        await _exchange(pipeline, "two", user_id="u1", conversation_id=conversation.id)

        stored = await gateway.get_conversation(conversation.id)
        assert stored.turn_count == 2
        messages = await gateway.list_messages(conversation.id)
        assert [m.content for m in messages] == ["one", "Hi there", "two", "Hi there"]

    async def test_summary_written_on_fifth_pair_only(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)
        conversation = await gateway.create_conversation("u1", "jia", "t")

        for i in range(4):
            await _exchange(pipeline, f"q{i}", user_id="u1", conversation_id=conversation.id)
        assert (await gateway.get_conversation(conversation.id)).summary is None
        assert fake_provider.complete_calls == []

        await _exchange(pipeline, "q4", user_id="u1", conversation_id=conversation.id)

        stored = await gateway.get_conversation(conversation.id)
        assert stored.turn_count == 5
        assert stored.summary is not None
        assert stored.summary_turn_count == 5
        assert len(fake_provider.complete_calls) == 1
        assert fake_provider.complete_calls[0]["model"] == "claude-haiku-4-5"

    async def test_failed_summary_still_advances_counter(self, gateway):
        from bosschat.exceptions import ProviderError

        provider = FakeProvider(summary_error=ProviderError("fake", "overloaded", status_code=529))
        pipeline = _pipeline(provider, gateway)
        conversation = await gateway.create_conversation("u1", "jia", "t")

        for i in range(6):
            await _exchange(pipeline, f"q{i}", user_id="u1", conversation_id=conversation.id)

        stored = await gateway.get_conversation(conversation.id)
        assert stored.turn_count == 6
        assert stored.summary is None

    async def test_anonymous_exchange_is_not_persisted(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)

        await _exchange(pipeline, "hello")

        assert await gateway.list_conversations("u1") == []

    async def test_persistence_failure_does_not_affect_stream(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)

        events = await _exchange(pipeline, "hello", user_id="u1", conversation_id="does-not-exist")

        assert events[-1] == {"type": "done"}


class TestPriorContext:

    async def test_summaries_prime_later_requests(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)
        jia_conversation = await gateway.create_conversation("u1", "jia", "books")
        await gateway.save_summary(jia_conversation.id, "Cafe owner, VAT filing question.", 5)

        await _exchange(pipeline, "hi", persona_id="dojun", session_id="tab-2", user_id="u1")
        await _exchange(pipeline, "hi", persona_id="jia", session_id="tab-3", user_id="u1")

        dojun_prompt = fake_provider.stream_calls[0]["system_prompt"]
        jia_prompt = fake_provider.stream_calls[1]["system_prompt"]
        assert "Recently with Jia: Cafe owner, VAT filing question." in dojun_prompt
        assert "Previously with you: Cafe owner, VAT filing question." in jia_prompt

    async def test_anonymous_requests_get_no_prior_context(self, fake_provider, gateway):
        pipeline = _pipeline(fake_provider, gateway)
        conversation = await gateway.create_conversation("u1", "jia", "books")
        await gateway.save_summary(conversation.id, "secret", 5)

        await _exchange(pipeline, "hi", persona_id="jia")

        assert "secret" not in fake_provider.stream_calls[0]["system_prompt"]
