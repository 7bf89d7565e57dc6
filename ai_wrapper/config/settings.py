import json as json_mod
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AIW_", case_sensitive=False, populate_by_name=True
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AIW_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0
    max_retries: int = Field(default=3, ge=0)
    default_model: str = "gpt-3.5-turbo"
    chat_model: str = "gpt-5"
    system_prompt: str = "You are a helpful assistant."
    stream_buffer_size: int = Field(default=100, ge=1)
    request_timeout_s: float = 60.0
    log_level: str = "WARNING"
    extra_params: str = ""

    @property
    def extra_params_map(self) -> dict[str, object]:
        """Parse the ``extra_params`` JSON object; anything else yields an empty map."""
        raw = self.extra_params.strip()
        if not raw:
            return {}
        try:
            parsed = json_mod.loads(raw)
        except json_mod.JSONDecodeError:
            return {}
        if not isinstance(parsed, dict):
            return {}
        return {str(key): value for key, value in parsed.items() if str(key).strip()}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
