import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from agent.config import Settings
from agent.errors import ConfigurationError, UpstreamError
from agent.llm_openai import OpenAIChatStream
from agent.messages import ModelMessage


class FakeStream:
    def __init__(self, deltas):
        self._chunks = [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=d))]) for d in deltas
        ]
        self._chunks.insert(0, SimpleNamespace(choices=[]))
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk

    async def close(self):
        self.closed = True


def _drain(client, system="sys", messages=(ModelMessage("user", "hi"),)):
    async def run():
        return [d async for d in client.stream(system, messages)]

    return asyncio.run(run())


def test_missing_api_key_fails_at_call_time():
    client = OpenAIChatStream(Settings())
    assert client.available is False
    with pytest.raises(ConfigurationError):
        _drain(client)


def test_streams_text_deltas_and_closes_upstream():
    fake_stream = FakeStream(["Our special ", None, "is salmon."])
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=fake_stream)

    with patch("agent.llm_openai.AsyncOpenAI", return_value=sdk) as ctor:
        client = OpenAIChatStream(Settings(openai_api_key="sk-test", openai_base_url="https://gw.local/v1"))
        deltas = _drain(client, system="Be nice.")

    assert deltas == ["Our special ", "is salmon."]
    assert fake_stream.closed is True
    ctor.assert_called_once_with(api_key="sk-test", base_url="https://gw.local/v1")
    kwargs = sdk.chat.completions.create.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be nice."},
        {"role": "user", "content": "hi"},
    ]


def test_provider_status_is_propagated():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    error = openai.RateLimitError("Rate limit reached", response=response, body={"message": "Rate limit reached"})
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(side_effect=error)

    with patch("agent.llm_openai.AsyncOpenAI", return_value=sdk):
        client = OpenAIChatStream(Settings(openai_api_key="sk-test"))
        with pytest.raises(UpstreamError) as excinfo:
            _drain(client)

    assert excinfo.value.status_code == 429
    assert excinfo.value.message == "Rate limit reached"
