"""
HTTP client for the /generate endpoint with exponential backoff on transient failures.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from .errors import GenerationError, TransportError, UpstreamError, error_from_response

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 2


class GatewayClient:
    """Calls the generation gateway; the only layer that retries."""

    def __init__(
        self,
        base_url: str,
        retries: int = DEFAULT_RETRIES,
        backoff_base_seconds: float = 1.0,
        timeout_seconds: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.backoff_base_seconds = backoff_base_seconds
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Wait before the retry that follows failed attempt number `attempt` (1-based)."""
        return self.backoff_base_seconds * (2 ** (attempt - 1))

    async def _call_once(self, photo: str, style: str) -> str:
        url = f"{self.base_url}/generate"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self.transport
            ) as client:
                r = await client.post(url, json={"photo": photo, "style": style})
        except httpx.TimeoutException as e:
            raise TransportError("Generation request timed out", timed_out=True) from e
        except httpx.RequestError as e:
            raise TransportError(f"Generation request failed: {e}") from e

        try:
            body = r.json()
        except ValueError:
            body = None

        if r.status_code >= 400:
            raise error_from_response(r.status_code, body)
        if not isinstance(body, dict) or not body.get("success") or not body.get("image"):
            raise UpstreamError("Gateway returned no image", upstream_status=r.status_code, details=body)
        return body["image"]

    async def generate(self, photo: str, style: str, retries: Optional[int] = None) -> str:
        """Return the generated image data URI, or re-raise the last failure."""
        max_retries = self.retries if retries is None else retries
        attempt = 0
        while True:
            attempt += 1
            try:
                image = await self._call_once(photo, style)
                if attempt > 1:
                    logger.info("Generation succeeded on attempt %d", attempt)
                return image
            except GenerationError as e:
                if not e.retryable or attempt > max_retries:
                    logger.warning(
                        "Generation failed (%s) after %d attempt(s): %s",
                        e.code,
                        attempt,
                        e.message,
                    )
                    raise
                wait = self.backoff_delay(attempt)
                logger.warning(
                    "Generation transient error (%s), waiting %.1fs before retry %d/%d",
                    e.code,
                    wait,
                    attempt,
                    max_retries,
                )
                await self._sleep(wait)
