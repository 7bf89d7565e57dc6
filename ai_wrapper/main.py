import httpx

from ai_wrapper.config.settings import Settings
from ai_wrapper.providers.base import ProviderConfig
from ai_wrapper.providers.openai import OpenAIProvider
from ai_wrapper.services.chat_service import ChatService


def build_provider_config(settings: Settings) -> ProviderConfig:
    if not settings.api_key:
        raise SystemExit("OPENAI_API_KEY environment variable is required")
    return ProviderConfig(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
        max_retries=settings.max_retries,
        extra_params=settings.extra_params_map,
    )


def build_service(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatService:
    service = ChatService()
    provider = OpenAIProvider(
        build_provider_config(settings),
        default_model=settings.default_model,
        stream_buffer_size=settings.stream_buffer_size,
        transport=transport,
    )
    service.register(provider.name(), provider)
    return service
