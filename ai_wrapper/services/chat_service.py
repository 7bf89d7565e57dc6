"""Named provider registry with logged chat entry points."""

import logging
import threading
from time import perf_counter

from ai_wrapper.core.errors import ProviderNotFoundError
from ai_wrapper.models.chat import ChatRequest, ChatResponse, Message, StreamChunk
from ai_wrapper.providers.base import ChatProvider
from ai_wrapper.providers.streaming import ChunkStream

logger = logging.getLogger("aiw.service")


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000, 3)


class LoggedChunkStream:
    """Passes chunks through unchanged and logs how the stream ended."""

    def __init__(self, inner: ChunkStream, provider_name: str, model: str):
        self._inner = inner
        self._provider_name = provider_name
        self._model = model
        self._started = perf_counter()
        self._chunk_count = 0
        self._finished = False

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    def __aiter__(self) -> "LoggedChunkStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._finished:
            raise StopAsyncIteration
        try:
            chunk = await anext(self._inner)
        except StopAsyncIteration:
            self._finished = True
            raise

        if chunk.error is not None:
            self._finished = True
            logger.warning(
                "chat_stream_failed",
                extra={
                    "provider": self._provider_name,
                    "model": self._model,
                    "latency_ms": _elapsed_ms(self._started),
                    "chunk_count": self._chunk_count,
                    "error": str(chunk.error),
                },
            )
        elif chunk.done:
            self._finished = True
            logger.info(
                "chat_stream_completed",
                extra={
                    "provider": self._provider_name,
                    "model": self._model,
                    "latency_ms": _elapsed_ms(self._started),
                    "chunk_count": self._chunk_count,
                },
            )
        else:
            self._chunk_count += 1
        return chunk

    async def __aenter__(self) -> "LoggedChunkStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._finished = True
        await self._inner.aclose()


class ChatService:
    """Registry of providers keyed by name.

    Registering a name that already exists replaces the previous provider
    (last write wins). Lookups and registrations are serialized by a lock so
    the registry can be shared between threads.
    """

    def __init__(self) -> None:
        self._providers: dict[str, ChatProvider] = {}
        self._lock = threading.Lock()

    def register(self, name: str, provider: ChatProvider) -> None:
        with self._lock:
            replaced = name in self._providers
            self._providers[name] = provider
        logger.info(
            "provider_replaced" if replaced else "provider_registered",
            extra={"provider": name},
        )

    def get(self, name: str) -> ChatProvider:
        with self._lock:
            provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name)
        return provider

    def list_providers(self) -> list[str]:
        with self._lock:
            return sorted(self._providers)

    async def chat(self, provider_name: str, request: ChatRequest) -> ChatResponse:
        provider = self.get(provider_name)

        started = perf_counter()
        logger.info(
            "chat_request_started",
            extra={"provider": provider_name, "model": request.model},
        )
        try:
            response = await provider.chat(request)
        except Exception as exc:
            logger.warning(
                "chat_request_failed",
                extra={
                    "provider": provider_name,
                    "model": request.model,
                    "latency_ms": _elapsed_ms(started),
                    "error": str(exc),
                },
            )
            raise

        logger.info(
            "chat_request_completed",
            extra={
                "provider": provider_name,
                "model": response.model or request.model,
                "latency_ms": _elapsed_ms(started),
                "token_in": response.usage.prompt_tokens,
                "token_out": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
        )
        return response

    async def chat_stream(self, provider_name: str, request: ChatRequest) -> LoggedChunkStream:
        provider = self.get(provider_name)

        logger.info(
            "chat_stream_started",
            extra={"provider": provider_name, "model": request.model},
        )
        try:
            stream = await provider.chat_stream(request)
        except Exception as exc:
            logger.warning(
                "chat_stream_request_failed",
                extra={
                    "provider": provider_name,
                    "model": request.model,
                    "error": str(exc),
                },
            )
            raise
        return LoggedChunkStream(stream, provider_name=provider_name, model=request.model)

    async def simple_chat(self, provider_name: str, model: str, message: str) -> str:
        request = ChatRequest(messages=[Message(role="user", content=message)], model=model)
        response = await self.chat(provider_name, request)
        return response.content

    async def chat_with_history(
        self, provider_name: str, model: str, messages: list[Message]
    ) -> str:
        response = await self.chat(provider_name, ChatRequest(messages=messages, model=model))
        return response.content

    async def get_provider_models(self, provider_name: str) -> list[str]:
        return await self.get(provider_name).list_models()

    async def health_check(self, provider_name: str) -> None:
        """Send a tiny completion; any failure propagates to the caller."""
        provider = self.get(provider_name)
        request = ChatRequest(
            messages=[Message(role="user", content="Hello")],
            max_tokens=10,
        )
        await provider.chat(request)

    async def aclose(self) -> None:
        with self._lock:
            providers = list(self._providers.values())
        for provider in providers:
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()
