import asyncio
import json
from collections.abc import Callable, Iterable

import httpx
import pytest

from ai_wrapper.config.settings import clear_settings_cache
from ai_wrapper.providers.base import ProviderConfig

Handler = Callable[[httpx.Request], httpx.Response]


def sse_body(*payloads: object, done: bool = True) -> bytes:
    """Render payloads as ``data:`` frames, dict payloads as JSON."""
    frames = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        frames.append(f"data: {data}\n\n")
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode("utf-8")


def delta_frame(
    chunk_id: str, content: str, finish_reason: str | None = None
) -> dict[str, object]:
    return {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "gpt-3.5-turbo",
        "choices": [
            {"index": 0, "delta": {"content": content}, "finish_reason": finish_reason}
        ],
    }


class FrameStream(httpx.AsyncByteStream):
    """Async body that yields one frame at a time and records how far it got."""

    def __init__(
        self,
        frames: Iterable[bytes],
        hang: bool = False,
        fail_with: Exception | None = None,
    ):
        self._frames = list(frames)
        self._hang = hang
        self._fail_with = fail_with
        self.frames_sent = 0
        self.closed = False

    async def __aiter__(self):  # type: ignore[override]
        for frame in self._frames:
            self.frames_sent += 1
            yield frame
        if self._fail_with is not None:
            raise self._fail_with
        if self._hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for name in ("OPENAI_API_KEY", "AIW_API_KEY", "AIW_EXTRA_PARAMS", "AIW_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        api_key="test-key",
        base_url="https://api.example.test/v1",
        timeout_s=5.0,
        max_retries=2,
    )


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace the transport's backoff sleep and record requested delays."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("ai_wrapper.providers.transport.asyncio.sleep", fake_sleep)
    return delays


@pytest.fixture(name="sse_body")
def _sse_body_fixture() -> Callable[..., bytes]:
    return sse_body


@pytest.fixture(name="delta_frame")
def _delta_frame_fixture() -> Callable[..., dict[str, object]]:
    return delta_frame


@pytest.fixture(name="frame_stream")
def _frame_stream_fixture() -> type[FrameStream]:
    return FrameStream
