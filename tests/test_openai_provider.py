"""Tests for the OpenAI streaming provider."""

import asyncio
from types import SimpleNamespace

import pytest

from llm.exceptions import ModelTimeout
from llm.providers import OpenAIProvider


def chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class StubStream:
    def __init__(self, chunks, delay=0.0):
        self.chunks = chunks
        self.delay = delay

    async def __aiter__(self):
        for c in self.chunks:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield c


class StubOpenAI:
    def __init__(self, stream):
        self.requests = []

        async def create(**kwargs):
            self.requests.append(kwargs)
            return stream

        self.chat = SimpleNamespace(completions=SimpleNamespace(create=create))


def collect(provider):
    async def scenario():
        return [text async for text in provider.stream_completion("Be brief.", "hi")]

    return asyncio.run(scenario())


def test_streams_content_deltas():
    stub = StubOpenAI(StubStream([chunk("Hello"), chunk(None), chunk(" there")]))
    provider = OpenAIProvider(model_id="gpt-test", client=stub)

    assert collect(provider) == ["Hello", " there"]
    request = stub.requests[0]
    assert request["stream"] is True
    assert request["messages"][0] == {"role": "system", "content": "Be brief."}


def test_inactivity_timeout():
    stub = StubOpenAI(StubStream([chunk("late")], delay=0.5))
    provider = OpenAIProvider(inactivity_timeout=0.05, client=stub)

    with pytest.raises(ModelTimeout):
        collect(provider)
