import asyncio
import json
from datetime import UTC, datetime

import httpx
import pytest

from ai_wrapper.core.errors import DecodeError, ProviderError
from ai_wrapper.models.chat import ChatRequest, ChatResponse, Message, StreamChunk
from ai_wrapper.providers.base import ProviderConfig
from ai_wrapper.providers.openai import DEFAULT_MODEL, OpenAIProvider


def _provider(config: ProviderConfig, handler) -> OpenAIProvider:  # type: ignore[no-untyped-def]  # noqa: ANN001
    return OpenAIProvider(config, transport=httpx.MockTransport(handler))


def test_name_is_openai(provider_config: ProviderConfig) -> None:
    provider = _provider(provider_config, lambda _: httpx.Response(200))
    assert provider.name() == "openai"


def test_chat_extracts_content_and_usage(provider_config: ProviderConfig) -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"content": "hello"}}],
                "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
            },
        )

    provider = _provider(provider_config, handler)
    response = asyncio.run(
        provider.chat(ChatRequest(messages=[Message(role="user", content="hi")]))
    )

    assert isinstance(response, ChatResponse)
    assert response.content == "hello"
    assert response.usage.total_tokens == 2
    assert seen[0]["model"] == DEFAULT_MODEL
    assert seen[0]["messages"] == [{"role": "user", "content": "hi"}]
    assert seen[0]["stream"] is False
    assert "max_tokens" not in seen[0]
    assert "temperature" not in seen[0]


def test_chat_maps_envelope_metadata(provider_config: ProviderConfig) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 1700000000,
                "model": "gpt-4",
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": "Chrono Drift"},
                        "finish_reason": "stop",
                    }
                ],
                "usage": {"prompt_tokens": 20, "completion_tokens": 4, "total_tokens": 24},
            },
        )

    provider = _provider(provider_config, handler)
    response = asyncio.run(provider.chat(ChatRequest(model="gpt-4")))

    assert response.id == "chatcmpl-1"
    assert response.model == "gpt-4"
    assert response.created == datetime.fromtimestamp(1700000000, tz=UTC)
    assert response.usage.prompt_tokens == 20
    assert response.usage.completion_tokens == 4


def test_chat_sends_options_and_preserves_message_order(provider_config: ProviderConfig) -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    provider = _provider(provider_config, handler)
    messages = [
        Message(role="system", content="be brief"),
        Message(role="user", content="first"),
        Message(role="assistant", content="reply"),
        Message(role="user", content="second"),
    ]
    asyncio.run(
        provider.chat(
            ChatRequest(messages=messages, model="gpt-4", max_tokens=50, temperature=0.9)
        )
    )

    body = seen[0]
    assert body["model"] == "gpt-4"
    assert body["max_tokens"] == 50
    assert body["temperature"] == 0.9
    assert [m["content"] for m in body["messages"]] == ["be brief", "first", "reply", "second"]  # type: ignore[index, union-attr]


def test_extra_params_are_merged_without_overriding_core_fields() -> None:
    config = ProviderConfig(
        api_key="k",
        base_url="https://api.example.test/v1",
        extra_params={"user": "cli", "model": "ignored", "stream": False},
    )
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, content=b"data: [DONE]\n\n")

    async def _run() -> list[StreamChunk]:
        provider = _provider(config, handler)
        async with await provider.chat_stream(ChatRequest(model="gpt-4o")) as stream:
            return [chunk async for chunk in stream]

    chunks = asyncio.run(_run())
    assert seen[0]["user"] == "cli"
    assert seen[0]["model"] == "gpt-4o"
    assert seen[0]["stream"] is True
    assert chunks[-1].done is True


def test_chat_malformed_envelope_raises_decode_error(provider_config: ProviderConfig) -> None:
    provider = _provider(provider_config, lambda _: httpx.Response(200, text="<html>"))
    with pytest.raises(DecodeError):
        asyncio.run(provider.chat(ChatRequest()))


def test_chat_envelope_without_choices_raises_decode_error(
    provider_config: ProviderConfig,
) -> None:
    provider = _provider(provider_config, lambda _: httpx.Response(200, json={"choices": []}))
    with pytest.raises(DecodeError):
        asyncio.run(provider.chat(ChatRequest()))


@pytest.mark.parametrize("field", ["id", "model", "created", "usage"])
def test_chat_reads_null_envelope_fields_as_defaults(
    provider_config: ProviderConfig, field: str
) -> None:
    payload: dict[str, object] = {
        "id": "chatcmpl-1",
        "created": 1700000000,
        "model": "gpt-4",
        "choices": [{"message": {"role": None, "content": "hello"}, "finish_reason": None}],
        "usage": {"prompt_tokens": 1, "completion_tokens": None, "total_tokens": 1},
    }
    payload[field] = None
    provider = _provider(provider_config, lambda _: httpx.Response(200, json=payload))

    response = asyncio.run(provider.chat(ChatRequest()))

    assert response.content == "hello"
    assert response.usage.completion_tokens == 0
    if field == "usage":
        assert response.usage.total_tokens == 0
    if field in ("id", "model"):
        assert getattr(response, field) == ""


def test_chat_surfaces_vendor_error(provider_config: ProviderConfig) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "error": {
                    "message": "model not found",
                    "type": "invalid_request_error",
                    "code": "model_not_found",
                }
            },
        )

    provider = _provider(provider_config, handler)
    with pytest.raises(ProviderError, match="model not found"):
        asyncio.run(provider.chat(ChatRequest(model="nope")))


def test_chat_stream_forces_stream_and_decodes(
    provider_config: ProviderConfig, sse_body, delta_frame
) -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            content=sse_body(delta_frame("c1", "Hel"), delta_frame("c1", "lo")),
            headers={"content-type": "text/event-stream"},
        )

    async def _run() -> list[StreamChunk]:
        provider = _provider(provider_config, handler)
        request = ChatRequest(messages=[Message(role="user", content="hi")], stream=False)
        async with await provider.chat_stream(request) as stream:
            return [chunk async for chunk in stream]

    chunks = asyncio.run(_run())
    assert seen[0]["stream"] is True
    assert "".join(c.content for c in chunks) == "Hello"
    assert chunks[-1].done is True
    assert chunks[-1].id == "c1"


def test_chat_stream_http_failure_raises_before_streaming(
    provider_config: ProviderConfig,
) -> None:
    provider = _provider(
        provider_config,
        lambda _: httpx.Response(429, json={"error": {"message": "slow down", "type": "rate_limit"}}),
    )
    with pytest.raises(ProviderError, match="slow down"):
        asyncio.run(provider.chat_stream(ChatRequest()))


def test_list_models_preserves_vendor_order(provider_config: ProviderConfig) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "object": "list",
                "data": [
                    {"id": "gpt-4o", "object": "model", "created": 1, "owned_by": "openai"},
                    {"id": "gpt-3.5-turbo", "object": "model", "created": 2, "owned_by": "openai"},
                    {"id": "dall-e-3", "object": "model", "created": 3, "owned_by": "system"},
                ],
            },
        )

    provider = _provider(provider_config, handler)
    models = asyncio.run(provider.list_models())

    assert models == ["gpt-4o", "gpt-3.5-turbo", "dall-e-3"]
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/v1/models"


def test_list_models_malformed_raises_decode_error(provider_config: ProviderConfig) -> None:
    provider = _provider(provider_config, lambda _: httpx.Response(200, json={"object": "list"}))
    with pytest.raises(DecodeError):
        asyncio.run(provider.list_models())
