"""Provider for OpenAI-compatible chat completion endpoints."""

from datetime import UTC, datetime

import httpx
from pydantic import ValidationError

from ai_wrapper.core.errors import DecodeError, TransportError
from ai_wrapper.models.chat import ChatRequest, ChatResponse, Usage
from ai_wrapper.models.openai import (
    OpenAIChatRequest,
    OpenAIChatResponse,
    OpenAIMessage,
    OpenAIModelList,
)
from ai_wrapper.providers.base import ProviderConfig
from ai_wrapper.providers.streaming import DEFAULT_BUFFER_SIZE, ChunkStream, decode_stream
from ai_wrapper.providers.transport import HTTPTransport

DEFAULT_MODEL = "gpt-3.5-turbo"


class OpenAIProvider:
    """Translates vendor-neutral chat requests to the OpenAI wire format and back."""

    def __init__(
        self,
        config: ProviderConfig,
        default_model: str = DEFAULT_MODEL,
        stream_buffer_size: int = DEFAULT_BUFFER_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._default_model = default_model
        self._stream_buffer_size = stream_buffer_size
        self._http = HTTPTransport(config, transport=transport)

    def name(self) -> str:
        return "openai"

    async def aclose(self) -> None:
        await self._http.aclose()

    async def chat(self, request: ChatRequest) -> ChatResponse:
        body = self._build_body(request, stream=False)
        response = await self._http.execute("POST", "/chat/completions", body)
        raw = await self._read_body(response)

        try:
            envelope = OpenAIChatResponse.model_validate_json(raw)
        except ValidationError as exc:
            raise DecodeError(f"failed to decode response: {exc}") from exc

        choice = envelope.choices[0]
        return ChatResponse(
            id=envelope.id,
            model=envelope.model,
            content=choice.message.content or "",
            usage=Usage(
                prompt_tokens=envelope.usage.prompt_tokens,
                completion_tokens=envelope.usage.completion_tokens,
                total_tokens=envelope.usage.total_tokens,
            ),
            created=(
                datetime.fromtimestamp(envelope.created, tz=UTC)
                if envelope.created
                else datetime.now(tz=UTC)
            ),
        )

    async def chat_stream(self, request: ChatRequest) -> ChunkStream:
        body = self._build_body(request, stream=True)
        response = await self._http.execute("POST", "/chat/completions", body)
        return decode_stream(response, buffer_size=self._stream_buffer_size)

    async def list_models(self) -> list[str]:
        response = await self._http.execute("GET", "/models")
        raw = await self._read_body(response)

        try:
            listing = OpenAIModelList.model_validate_json(raw)
        except ValidationError as exc:
            raise DecodeError(f"failed to decode response: {exc}") from exc
        return [model.id for model in listing.data]

    def _build_body(self, request: ChatRequest, stream: bool) -> dict[str, object]:
        wire = OpenAIChatRequest(
            model=request.model or self._default_model,
            messages=[
                OpenAIMessage(role=message.role, content=message.content)
                for message in request.messages
            ],
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            stream=stream,
        )
        return wire.to_body(dict(self._config.extra_params))

    @staticmethod
    async def _read_body(response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except httpx.HTTPError as exc:
            raise TransportError(f"failed to read response body: {exc}") from exc
        finally:
            await response.aclose()
