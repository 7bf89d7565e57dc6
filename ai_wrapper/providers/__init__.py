"""Provider implementations and their shared plumbing."""

from ai_wrapper.providers.base import ChatProvider, ProviderConfig
from ai_wrapper.providers.openai import OpenAIProvider
from ai_wrapper.providers.streaming import ChunkStream, decode_stream
from ai_wrapper.providers.transport import HTTPTransport

__all__ = [
    "ChatProvider",
    "ChunkStream",
    "HTTPTransport",
    "OpenAIProvider",
    "ProviderConfig",
    "decode_stream",
]
