"""Async client for the Gemini ``generateContent`` API.

Wraps one prompt/response exchange with the upstream text-generation
endpoint: builds the JSON envelope, posts it over HTTPS, and extracts
``candidates[0].content.parts[0].text`` from the reply.  Transient failures
are retried with exponential backoff, and the whole exchange is bounded by
an overall deadline.

Typical usage::

    client = GeminiClient(api_key="...")
    resp = await client.generate("Write a Spring Boot model for Book")
    text = resp.unwrap()
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx

from .config import GeminiConfig
from .models import GenerationRequest, GenerationResponse
from .utils import redact

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class GeminiClient:
    """Async client for the Gemini REST API.

    The API key travels as the ``key`` query parameter and is scrubbed from
    every error message the client produces.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        timeout: float = 120.0,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        deadline: float | None = 300.0,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.deadline = deadline

    @classmethod
    def from_config(cls, config: GeminiConfig) -> "GeminiClient":
        return cls(
            api_key=config.api_key.get_secret_value(),
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout,
            max_retries=config.max_retries,
            backoff_seconds=config.backoff_seconds,
            deadline=config.deadline,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    @staticmethod
    def _extract_text(data: Any) -> str:
        """Pull the generated text out of a ``generateContent`` envelope.

        Raises:
            KeyError, IndexError, TypeError: If the ``candidates`` path is
                missing or has the wrong shape.
        """
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        if not isinstance(text, str):
            raise TypeError("candidate text is not a string")
        return text

    @staticmethod
    def _extract_error(data: Any) -> str | None:
        """Return the message of an ``{"error": {...}}`` envelope, if present."""
        if not isinstance(data, dict) or "error" not in data:
            return None
        error = data["error"]
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or "unknown error")
        return str(error)

    def _failure(
        self,
        kind: str,
        message: str,
        attempts: int,
        started: float,
        status_code: int | None = None,
    ) -> GenerationResponse:
        return GenerationResponse(
            model=self.model,
            duration_ms=(time.monotonic() - started) * 1000.0,
            attempts=attempts,
            success=False,
            error=redact(message, self._api_key),
            error_kind=kind,
            status_code=status_code,
        )

    async def _attempt(
        self, request: GenerationRequest, attempt: int, started: float
    ) -> tuple[GenerationResponse, bool]:
        """Perform a single HTTP exchange.

        Returns:
            The response and whether a failure is worth retrying.
        """
        model = request.model or self.model
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/models/{model}:generateContent",
                    params={"key": self._api_key},
                    json=request.envelope(),
                )
        except httpx.TimeoutException:
            return self._failure(
                "transport",
                f"Request to Gemini timed out after {self.timeout}s.",
                attempt,
                started,
            ), True
        except httpx.TransportError as exc:
            return self._failure(
                "transport",
                f"Cannot reach Gemini at {self.base_url}: {exc}",
                attempt,
                started,
            ), True

        status = response.status_code
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            return self._failure(
                "protocol",
                f"Gemini returned a non-JSON body (HTTP {status}): {response.text[:200]}",
                attempt,
                started,
                status_code=status,
            ), status in _RETRYABLE_STATUS

        error_message = self._extract_error(data)
        if error_message is not None:
            return self._failure(
                "protocol",
                f"Gemini API error (HTTP {status}): {error_message}",
                attempt,
                started,
                status_code=status,
            ), status in _RETRYABLE_STATUS

        if status >= 400:
            return self._failure(
                "protocol",
                f"Gemini returned HTTP {status} without an error object.",
                attempt,
                started,
                status_code=status,
            ), status in _RETRYABLE_STATUS

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError):
            return self._failure(
                "protocol",
                "Gemini response is missing candidates[0].content.parts[0].text.",
                attempt,
                started,
                status_code=status,
            ), False

        return GenerationResponse(
            text=text,
            model=model,
            duration_ms=(time.monotonic() - started) * 1000.0,
            attempts=attempt,
            success=True,
        ), False

    async def _generate_with_retries(
        self, request: GenerationRequest, started: float, progress: dict[str, int]
    ) -> GenerationResponse:
        total_attempts = 1 + self.max_retries
        result = GenerationResponse(success=False)
        for attempt in range(1, total_attempts + 1):
            progress["attempts"] = attempt
            result, retryable = await self._attempt(request, attempt, started)
            if result.success or not retryable or attempt == total_attempts:
                return result
            await asyncio.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        return result

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, prompt: str, model: str | None = None) -> GenerationResponse:
        """Generate text from a prompt.

        Transport failures and HTTP 429/5xx are retried up to
        ``max_retries`` times. The call as a whole, backoff sleeps included,
        is cancelled once ``deadline`` seconds have elapsed.

        Args:
            prompt: The full instruction text.
            model: Override for the configured model name.

        Returns:
            A ``GenerationResponse`` with the raw text or an error indicator.
        """
        request = GenerationRequest(prompt=prompt, model=model or self.model)
        started = time.monotonic()
        # Attempts begun so far, read back if the deadline cancels the loop.
        progress = {"attempts": 0}
        try:
            return await asyncio.wait_for(
                self._generate_with_retries(request, started, progress),
                timeout=self.deadline,
            )
        except asyncio.TimeoutError:
            return self._failure(
                "transport",
                f"Gemini call exceeded the {self.deadline}s deadline.",
                max(progress["attempts"], 1),
                started,
            )
