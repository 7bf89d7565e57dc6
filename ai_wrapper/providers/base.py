from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

from ai_wrapper.models.chat import ChatRequest, ChatResponse

if TYPE_CHECKING:
    from ai_wrapper.providers.streaming import ChunkStream

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class ProviderConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_retries: int = DEFAULT_MAX_RETRIES
    extra_params: Mapping[str, object] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("api_key is required")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if not isinstance(self.extra_params, MappingProxyType):
            object.__setattr__(
                self, "extra_params", MappingProxyType(dict(self.extra_params))
            )


class ChatProvider(Protocol):
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Run one non-streaming completion."""

    async def chat_stream(self, request: ChatRequest) -> "ChunkStream":
        """Start a streaming completion and return its chunk channel."""

    def name(self) -> str:
        """Return the provider's registry-facing name."""

    async def list_models(self) -> list[str]:
        """Return model identifiers in vendor order."""
