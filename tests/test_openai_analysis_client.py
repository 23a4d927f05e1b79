"""Tests for the OpenAI analysis client."""

import asyncio
import json

import httpx
import openai
import pytest

from box_tracker.adapters.openai_analysis_client import OpenAIAnalysisClient
from box_tracker.domain.errors import RemoteRateLimitError, RemoteServiceError
from box_tracker.services.analysis import AnalysisService, RateLimiter
from tests.conftest import SAMPLE_PHOTO

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class _Message:
    def __init__(self, content: str | None) -> None:
        self.content = content


class _Choice:
    def __init__(self, content: str | None) -> None:
        self.message = _Message(content)


class _FakeCompletions:
    def __init__(self, outcome: str | None | Exception) -> None:
        self.outcome = outcome
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return type("Resp", (), {"choices": [_Choice(self.outcome)]})()


class _FakeOpenAI:
    def __init__(self, outcome: str | None | Exception) -> None:
        self.completions = _FakeCompletions(outcome)
        self.chat = type("Chat", (), {"completions": self.completions})()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _complete(client: OpenAIAnalysisClient) -> str:
    return asyncio.run(
        client.complete(
            model="gpt-4o-mini",
            prompt="Identify the item",
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
            max_tokens=1000,
        )
    )


def test_openai_client_sends_image_in_json_mode() -> None:
    fake = _FakeOpenAI(json.dumps({"items": [{"name": "Lamp"}]}))
    client = OpenAIAnalysisClient(client=fake)

    result = _complete(client)

    assert json.loads(result) == {"items": [{"name": "Lamp"}]}
    payload = fake.completions.last_payload
    assert payload is not None
    assert payload["model"] == "gpt-4o-mini"
    assert payload["max_tokens"] == 1000
    assert payload["response_format"] == {"type": "json_object"}
    content = payload["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": "Identify the item"}
    assert content[1]["image_url"]["url"] == "data:image/jpeg;base64,ZmFrZQ=="


def test_openai_client_maps_rate_limit() -> None:
    error = openai.RateLimitError(
        "Rate limit reached",
        response=httpx.Response(429, request=_REQUEST),
        body=None,
    )
    client = OpenAIAnalysisClient(client=_FakeOpenAI(error))

    with pytest.raises(RemoteRateLimitError):
        _complete(client)


def test_openai_client_maps_other_failures() -> None:
    error = openai.InternalServerError(
        "Server error",
        response=httpx.Response(500, request=_REQUEST),
        body=None,
    )
    client = OpenAIAnalysisClient(client=_FakeOpenAI(error))

    with pytest.raises(RemoteServiceError) as excinfo:
        _complete(client)

    assert not isinstance(excinfo.value, RemoteRateLimitError)


def test_openai_client_rejects_empty_content() -> None:
    client = OpenAIAnalysisClient(client=_FakeOpenAI(None))

    with pytest.raises(RemoteServiceError, match="No response from OpenAI"):
        _complete(client)


def test_openai_client_close() -> None:
    fake = _FakeOpenAI("{}")
    client = OpenAIAnalysisClient(client=fake)

    asyncio.run(client.close())

    assert fake.closed


def test_create_disables_sdk_retries() -> None:
    client = OpenAIAnalysisClient.create("sk-test")

    assert client.client.max_retries == 0
    asyncio.run(client.close())


def test_rate_limited_analysis_sends_one_request_per_attempt() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            429, json={"error": {"message": "Rate limit reached", "type": "requests"}}
        )

    async def no_sleep(_seconds: float) -> None:
        return None

    async def run() -> None:
        created = OpenAIAnalysisClient.create("sk-test")
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = OpenAIAnalysisClient(
            client=created.client.with_options(http_client=http_client)
        )
        service = AnalysisService(
            client=client,
            model="gpt-4o-mini",
            rate_limiter=RateLimiter(),
            sleep=no_sleep,
            jitter=lambda: 0.0,
        )
        try:
            with pytest.raises(RemoteRateLimitError):
                await service.analyze(SAMPLE_PHOTO)
        finally:
            await http_client.aclose()
            await created.close()

    asyncio.run(run())

    assert len(requests) == 4
