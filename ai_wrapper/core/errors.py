"""Error taxonomy for provider calls.

Transport-level failures (network, timeout, retry exhaustion) are kept apart
from failures the vendor reported itself, so callers can tell "the request
never got an answer" from "the vendor said no".
"""

import json
from dataclasses import dataclass
from typing import Any


class WrapperError(Exception):
    """Base class for every error raised by ai_wrapper."""


class EncodingError(WrapperError):
    """The request body could not be serialized. Never retried."""


class TransportError(WrapperError):
    """Network failure or timeout talking to the vendor."""


class RequestFailed(WrapperError):
    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"request failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class HTTPError(WrapperError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error: {status_code} {body[:200]}")
        self.status_code = status_code
        self.body = body


class ProviderError(WrapperError):
    def __init__(
        self,
        code: str,
        message: str,
        error_type: str = "provider",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.error_type = error_type
        self.status_code = status_code


class DecodeError(WrapperError):
    """Malformed JSON in a response envelope or a stream frame."""


class StreamReadError(WrapperError):
    """The body stream ended or failed before a terminal chunk was produced."""


class ProviderNotFoundError(WrapperError, LookupError):
    def __init__(self, name: str):
        super().__init__(f"provider '{name}' not found")
        self.name = name


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    type: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "type": self.type,
            }
        }

    @classmethod
    def from_body(cls, body: bytes | str) -> "ErrorEnvelope | None":
        """Parse a vendor ``{"error": {...}}`` body, or return None if it isn't one."""
        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(parsed, dict):
            return None
        error = parsed.get("error")
        if not isinstance(error, dict):
            return None
        code = error.get("code")
        return cls(
            code="" if code is None else str(code),
            message=str(error.get("message") or ""),
            type=str(error.get("type") or ""),
        )

    def to_exception(self, status_code: int | None = None) -> ProviderError:
        return ProviderError(
            code=self.code,
            message=self.message,
            error_type=self.type,
            status_code=status_code,
        )
