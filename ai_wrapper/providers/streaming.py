"""Server-sent-event decoding for streamed chat completions.

A ``ChunkStream`` runs one producer task that reads the response body line by
line and pushes ``StreamChunk`` objects into a bounded queue. The consumer
iterates the stream; iteration ends right after the terminal chunk (``done`` or
``error``). Every failure, including a body that closes early, is delivered as
that terminal chunk rather than raised.

Frame handling:

    ""            -> skipped
    ": comment"   -> skipped
    "data: [DONE]"-> terminal chunk {id: last seen id, done: True}
    "data: {...}" -> chunk from choices[0]; terminal when finish_reason is set
    bad JSON      -> terminal chunk carrying DecodeError
"""

import asyncio
import logging

import httpx
from pydantic import ValidationError

from ai_wrapper.core.errors import DecodeError, StreamReadError
from ai_wrapper.models.chat import StreamChunk
from ai_wrapper.models.openai import OpenAIStreamChunk

logger = logging.getLogger("aiw.streaming")

DEFAULT_BUFFER_SIZE = 100
DATA_FIELD = "data:"
DONE_SENTINEL = "[DONE]"


def parse_data_line(line: str) -> str | None:
    """Return the payload of an SSE ``data`` line, or None for anything else."""
    if not line or line.startswith(":"):
        return None
    if not line.startswith(DATA_FIELD):
        return None
    payload = line[len(DATA_FIELD):]
    if payload.startswith(" "):
        payload = payload[1:]
    return payload


class ChunkStream:
    """Ordered, bounded, cancellable channel of ``StreamChunk`` objects."""

    def __init__(self, response: httpx.Response, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self._response = response
        self._queue: asyncio.Queue[StreamChunk] = asyncio.Queue(maxsize=buffer_size)
        self._last_id = ""
        self._finished = False
        self._producer = asyncio.create_task(self._produce())

    @property
    def closed(self) -> bool:
        return self._response.is_closed and self._producer.done()

    def __aiter__(self) -> "ChunkStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._finished:
            raise StopAsyncIteration
        try:
            chunk = await self._queue.get()
        except asyncio.CancelledError:
            await self.aclose()
            raise
        if chunk.terminal:
            self._finished = True
        return chunk

    async def __aenter__(self) -> "ChunkStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the producer and release the response body."""
        self._finished = True
        if not self._producer.done():
            self._producer.cancel()
            await asyncio.wait({self._producer})
        await self._response.aclose()

    async def _emit(self, chunk: StreamChunk) -> None:
        # Blocks while the queue is full; chunks are never dropped.
        await self._queue.put(chunk)

    async def _produce(self) -> None:
        error: Exception | None = None
        try:
            if not await self._pump():
                error = StreamReadError("stream closed before a terminal frame was received")
        except httpx.HTTPError as exc:
            error = StreamReadError(f"stream scanning error: {exc}")
        except Exception as exc:
            logger.exception("stream_producer_failed")
            error = StreamReadError(f"stream scanning error: {type(exc).__name__}: {exc}")
        finally:
            await self._response.aclose()

        if error is not None:
            await self._emit(StreamChunk(id=self._last_id, error=error))

    async def _pump(self) -> bool:
        """Read frames until a terminal chunk is emitted; False if the body ran out first."""
        async for line in self._response.aiter_lines():
            payload = parse_data_line(line)
            if payload is None:
                continue

            if payload == DONE_SENTINEL:
                await self._emit(StreamChunk(id=self._last_id, done=True))
                return True

            try:
                frame = OpenAIStreamChunk.model_validate_json(payload)
            except ValidationError as exc:
                await self._emit(
                    StreamChunk(
                        id=self._last_id,
                        error=DecodeError(f"failed to parse stream response: {exc}"),
                    )
                )
                return True

            self._last_id = frame.id
            if not frame.choices:
                continue

            choice = frame.choices[0]
            done = choice.finish_reason is not None
            await self._emit(
                StreamChunk(id=frame.id, content=choice.delta.content or "", done=done)
            )
            if done:
                return True
        return False


def decode_stream(
    response: httpx.Response, buffer_size: int = DEFAULT_BUFFER_SIZE
) -> ChunkStream:
    """Start decoding ``response`` as an SSE chat completion stream."""
    return ChunkStream(response, buffer_size=buffer_size)
