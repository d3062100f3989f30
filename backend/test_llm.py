"""
Tests for the rate-limited completion client
"""
import asyncio
import json

import httpx
import pytest

from advisor.llm import (
    CompletionClient,
    CompletionTimeoutError,
    ConfigurationError,
    MalformedResponseError,
    PromptTooLargeError,
    ProviderError,
    estimate_tokens,
)
from advisor.rate_limiter import RateLimiter


class CountingLimiter(RateLimiter):
    """Limiter that never waits but counts its calls"""

    def __init__(self):
        super().__init__(max_per_window=1000, min_interval=0.0)
        self.acquired = 0
        self.done = 0

    async def acquire(self):
        self.acquired += 1

    def mark_done(self):
        self.done += 1


def chat_response(content, status_code=200):
    return httpx.Response(status_code, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def make_client(handler, limiter=None, **kwargs):
    requests = []

    def recording_handler(request):
        requests.append(request)
        return handler(request)

    client = CompletionClient(
        limiter or CountingLimiter(),
        api_key="test-key",
        base_url="https://llm.test/v1/chat/completions",
        model="test-model",
        retry_delay=0,
        transport=httpx.MockTransport(recording_handler),
        **kwargs
    )
    return client, requests


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_missing_api_key_is_fatal():
    with pytest.raises(ConfigurationError):
        CompletionClient(RateLimiter(), api_key="")


def test_complete_returns_trimmed_content():
    client, requests = make_client(lambda request: chat_response("  多吃蔬菜。\n"))
    assert asyncio.run(client.complete("hello")) == "多吃蔬菜。"

    assert len(requests) == 1
    request = requests[0]
    assert request.headers["Authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert body["messages"] == [{"role": "user", "content": "hello"}]
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 2000


def test_system_prompt_is_sent_first():
    client, requests = make_client(lambda request: chat_response("ok"))
    asyncio.run(client.complete("question", system="be brief"))
    body = json.loads(requests[0].content)
    assert body["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "question"},
    ]


def test_max_tokens_shrinks_near_budget():
    client, requests = make_client(lambda request: chat_response("ok"), token_limit=1000)
    asyncio.run(client.complete("x" * 3200))  # ~800 tokens
    assert json.loads(requests[0].content)["max_tokens"] == 200


def test_prompt_too_large_makes_no_request():
    limiter = CountingLimiter()
    client, requests = make_client(lambda request: chat_response("ok"), limiter=limiter, token_limit=10)
    with pytest.raises(PromptTooLargeError) as excinfo:
        asyncio.run(client.complete("x" * 41))
    assert excinfo.value.estimated_tokens == 11
    assert requests == []
    assert limiter.acquired == 0


def test_provider_error_uses_error_body_message():
    limiter = CountingLimiter()
    client, requests = make_client(
        lambda request: httpx.Response(429, json={"error": {"message": "rate limited"}}),
        limiter=limiter
    )
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(client.complete("hello"))
    assert excinfo.value.status_code == 429
    assert excinfo.value.message == "rate limited"
    assert len(requests) == 1
    # The slot is consumed even though the call failed
    assert limiter.acquired == 1
    assert limiter.done == 1


def test_provider_error_without_body_uses_placeholder():
    client, _ = make_client(lambda request: httpx.Response(500, text="<html>oops</html>"))
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(client.complete("hello"))
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Unknown error"


@pytest.mark.parametrize("body", [
    {},
    {"choices": []},
    {"choices": [{"message": {}}]},
    {"choices": [{"message": {"content": "   "}}]},
    {"choices": [{"message": {"content": None}}]},
])
def test_missing_content_is_malformed(body):
    client, _ = make_client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(MalformedResponseError):
        asyncio.run(client.complete("hello"))


def test_non_json_success_is_malformed():
    client, _ = make_client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(MalformedResponseError):
        asyncio.run(client.complete("hello"))


def test_network_errors_are_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 2:
            raise httpx.ConnectError("connection refused", request=request)
        return chat_response("recovered")

    limiter = CountingLimiter()
    client, _ = make_client(handler, limiter=limiter)
    assert asyncio.run(client.complete("hello")) == "recovered"
    assert len(attempts) == 2
    assert limiter.acquired == 2
    assert limiter.done == 2


def test_network_errors_exhaust_retries():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, requests = make_client(handler, max_retries=2)
    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(client.complete("hello"))
    assert excinfo.value.status_code is None
    assert len(requests) == 2


def test_deadline_raises_timeout_error():
    class SlowLimiter(CountingLimiter):
        async def acquire(self):
            await asyncio.sleep(1)

    client, requests = make_client(lambda request: chat_response("late"), limiter=SlowLimiter())
    with pytest.raises(CompletionTimeoutError):
        asyncio.run(client.complete("hello", timeout=0.01))
    assert requests == []


def test_prompt_filling_whole_budget_is_too_large():
    client, requests = make_client(lambda request: chat_response("ok"), token_limit=10)
    with pytest.raises(PromptTooLargeError):
        asyncio.run(client.complete("x" * 40))
    assert requests == []


def test_prompt_leaves_room_for_one_output_token():
    client, requests = make_client(lambda request: chat_response("ok"), token_limit=10)
    asyncio.run(client.complete("x" * 36))
    assert json.loads(requests[0].content)["max_tokens"] == 1
