from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatRequest(BaseModel):
    messages: list[Message] = Field(default_factory=list)
    model: str = ""
    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0, le=2)
    stream: bool = False


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    id: str = ""
    model: str = ""
    content: str = ""
    usage: Usage = Field(default_factory=Usage)
    created: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class StreamChunk(BaseModel):
    """One delivered piece of a streamed reply.

    A stream ends with exactly one terminal chunk: either ``done`` is true or
    ``error`` is set, never both.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = ""
    content: str = ""
    done: bool = False
    error: Exception | None = None

    @model_validator(mode="after")
    def _check_terminal(self) -> "StreamChunk":
        if self.done and self.error is not None:
            raise ValueError("a stream chunk cannot be both done and failed")
        return self

    @property
    def terminal(self) -> bool:
        return self.done or self.error is not None
