"""Wire schemas for the OpenAI chat completions and models endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OpenAIMessage(BaseModel):
    role: str
    content: str


class OpenAIChatRequest(BaseModel):
    model: str
    messages: list[OpenAIMessage]
    max_tokens: int | None = None
    temperature: float | None = None
    stream: bool = False

    def to_body(self, extra_params: dict[str, object] | None = None) -> dict[str, object]:
        body: dict[str, object] = dict(extra_params or {})
        body.update(self.model_dump(exclude_none=True))
        return body


class WireModel(BaseModel):
    """Base for vendor payloads: unknown keys are ignored, null reads as the field default."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ResponseMessage(WireModel):
    role: str = "assistant"
    content: str | None = None


class ResponseChoice(WireModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: str | None = None


class ResponseUsage(WireModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIChatResponse(WireModel):
    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: list[ResponseChoice] = Field(min_length=1)
    usage: ResponseUsage = Field(default_factory=ResponseUsage)


class StreamDelta(WireModel):
    role: str | None = None
    content: str | None = None


class StreamChoice(WireModel):
    index: int = 0
    delta: StreamDelta = Field(default_factory=StreamDelta)
    finish_reason: str | None = None


class OpenAIStreamChunk(WireModel):
    id: str = ""
    object: str = "chat.completion.chunk"
    created: int = 0
    model: str = ""
    choices: list[StreamChoice] = Field(default_factory=list)


class OpenAIModel(WireModel):
    id: str
    object: str = "model"
    created: int = 0
    owned_by: str = ""


class OpenAIModelList(WireModel):
    object: str = "list"
    data: list[OpenAIModel]
