"""Conversation state for the terminal chat."""

import asyncio
import logging
from collections.abc import Callable

from ai_wrapper.core.errors import WrapperError
from ai_wrapper.models.chat import ChatRequest, Message
from ai_wrapper.services.chat_service import ChatService

logger = logging.getLogger("aiw.cli")

WELCOME_LINE = "Welcome to AI Chat!"


class ChatSession:
    """Keeps the transcript and the message history for one chat.

    Each question is answered by streaming the whole conversation so far.
    Failures become ``Error: ...`` transcript lines; the session stays usable.
    """

    def __init__(
        self,
        service: ChatService,
        provider_name: str = "openai",
        model: str = "",
        system_prompt: str = "You are a helpful assistant.",
        request_timeout_s: float | None = 60.0,
    ):
        self._service = service
        self._provider_name = provider_name
        self._model = model
        self._request_timeout_s = request_timeout_s
        self.history: list[str] = [WELCOME_LINE]
        self.messages: list[Message] = []
        if system_prompt:
            self.messages.append(Message(role="system", content=system_prompt))

    async def ask(
        self,
        question: str,
        on_token: Callable[[str], None] | None = None,
    ) -> str | None:
        """Stream a reply to ``question``; return it, or None when it failed."""
        question = question.strip()
        if not question:
            return None

        self.history.append(f"You: {question}")
        self.messages.append(Message(role="user", content=question))

        try:
            async with asyncio.timeout(self._request_timeout_s):
                reply = await self._stream_reply(on_token)
        except TimeoutError:
            self.history.append("Error: request timed out")
            return None
        except WrapperError as exc:
            self.history.append(f"Error: {exc}")
            return None
        except Exception as exc:
            logger.exception("chat_session_failed", extra={"error": str(exc)})
            self.history.append(f"Error: {exc}")
            return None

        self.history.append(f"AI: {reply}")
        self.messages.append(Message(role="assistant", content=reply))
        return reply

    async def _stream_reply(self, on_token: Callable[[str], None] | None) -> str:
        request = ChatRequest(messages=list(self.messages), model=self._model)
        parts: list[str] = []
        async with await self._service.chat_stream(self._provider_name, request) as stream:
            async for chunk in stream:
                if chunk.error is not None:
                    raise chunk.error
                if chunk.content:
                    parts.append(chunk.content)
                    if on_token is not None:
                        on_token(chunk.content)
                if chunk.done:
                    break
        return "".join(parts)

    def render(self) -> str:
        return "\n".join(self.history)
