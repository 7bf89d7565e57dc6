"""Authenticated HTTP transport with bounded retry.

Retries cover network failures and 5xx responses only. The pause between
attempt ``i`` and ``i + 1`` is ``i + 1`` seconds, a linear schedule kept for
compatibility with existing deployments.
"""

import asyncio
import json
import logging
from time import perf_counter

import httpx

from ai_wrapper.core.errors import (
    EncodingError,
    ErrorEnvelope,
    HTTPError,
    RequestFailed,
    TransportError,
    WrapperError,
)
from ai_wrapper.providers.base import ProviderConfig

logger = logging.getLogger("aiw.transport")

PRODUCT_NAME = "ai-wrapper"
PRODUCT_VERSION = "1.0"
USER_AGENT = f"{PRODUCT_NAME}/{PRODUCT_VERSION}"


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the zero-indexed ``attempt`` failed."""
    return float(attempt + 1)


class HTTPTransport:
    """Owns one ``httpx.AsyncClient`` and executes vendor requests through it."""

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = config.base_url.rstrip("/")
        self._max_retries = config.max_retries
        self._headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if transport is None:
            self._client = httpx.AsyncClient(timeout=config.timeout_s)
        else:
            self._client = httpx.AsyncClient(timeout=config.timeout_s, transport=transport)

    async def __aenter__(self) -> "HTTPTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(
        self,
        method: str,
        path: str,
        body: dict[str, object] | None = None,
    ) -> httpx.Response:
        """Send a request and return the open response for the caller to consume.

        The caller owns the returned response and must close it. Failures raise
        ``EncodingError``, ``RequestFailed``, ``ProviderError`` or ``HTTPError``.
        """
        content: bytes | None = None
        if body is not None:
            try:
                content = json.dumps(body, allow_nan=False).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise EncodingError(f"failed to marshal request body: {exc}") from exc

        request = self._client.build_request(
            method,
            f"{self._base_url}{path}",
            content=content,
            headers=self._headers,
        )

        last_error: Exception | None = None
        attempts = 0
        for attempt in range(self._max_retries + 1):
            attempts = attempt + 1
            started = perf_counter()
            try:
                response = await self._client.send(request, stream=True)
            except httpx.TimeoutException as exc:
                last_error = TransportError(f"request timed out: {exc}")
            except httpx.TransportError as exc:
                last_error = TransportError(f"request failed: {type(exc).__name__}: {exc}")
            else:
                if response.status_code < 500:
                    if response.status_code >= 400:
                        raise await self._error_from_response(response)
                    return response
                last_error = await self._error_from_response(response)

            logger.warning(
                "provider_request_attempt_failed",
                extra={
                    "method": method,
                    "path": path,
                    "attempt": attempts,
                    "status_code": getattr(last_error, "status_code", None),
                    "latency_ms": round((perf_counter() - started) * 1000, 3),
                    "error": str(last_error),
                },
            )
            if attempt < self._max_retries:
                await asyncio.sleep(backoff_delay(attempt))

        assert last_error is not None
        raise RequestFailed(attempts=attempts, last_error=last_error)

    @staticmethod
    async def _error_from_response(response: httpx.Response) -> WrapperError:
        """Read and close an error response, then classify its body."""
        try:
            raw = await response.aread()
        except httpx.HTTPError as exc:
            return TransportError(f"failed to read error response: {exc}")
        finally:
            await response.aclose()

        envelope = ErrorEnvelope.from_body(raw)
        if envelope is not None:
            return envelope.to_exception(status_code=response.status_code)
        return HTTPError(
            status_code=response.status_code,
            body=raw.decode("utf-8", errors="replace"),
        )
