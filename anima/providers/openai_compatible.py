"""Chat-completion client for OpenAI-compatible HTTP endpoints."""

from __future__ import annotations

import time
from typing import Any

import httpx
from loguru import logger

from anima.config.defaults import PLACEHOLDER_API_KEY
from anima.core.models import ChatMessage, ChatResult
from anima.telemetry.base import TelemetryPort, emit_incr

_BODY_PREVIEW_CHARS = 500


class ResponseShapeError(ValueError):
    """A 2xx response did not carry a usable completion."""


class CompletionClient:
    """
    POSTs ``{model, max_tokens, temperature, messages}`` to
    ``{base_url}/chat/completions`` with a Bearer credential.

    Every outcome is returned as a ``ChatResult``; network, status and
    payload problems never escape as exceptions.
    """

    def __init__(
        self,
        *,
        base_url: str = "https://api.openai.com/v1",
        api_key: str = "",
        model: str = "gpt-4o-mini",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        extra_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.api_url = base_url.rstrip("/") + "/chat/completions"
        self.api_key = (api_key or "").strip()
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.extra_headers = extra_headers
        self.telemetry = telemetry
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info("Completion client ready: endpoint={}, model={}", self.api_url, self.model)

    @classmethod
    def from_config(cls, config, *, telemetry: TelemetryPort | None = None) -> CompletionClient:
        """Build from an ``LLMConfig`` section."""
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout_seconds=config.request_timeout_seconds,
            telemetry=telemetry,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)
        return self._client

    def build_request(
        self,
        messages: list[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        return {
            "model": model or self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> ChatResult:
        if not self.configured:
            logger.warning("Completion API key not configured")
            emit_incr(self.telemetry, "llm_requests_total", labels=(("outcome", "configuration"),))
            return ChatResult.failure("configuration", "API key not configured")

        body = self.build_request(messages, model=model, temperature=temperature)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **(self.extra_headers or {}),
        }
        logger.debug("LLM request: model={}, messages={}", body["model"], len(body["messages"]))

        started = time.perf_counter()
        try:
            response = await self._http().post(self.api_url, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error("LLM request failed: {}", e)
            emit_incr(self.telemetry, "llm_requests_total", labels=(("outcome", "transport"),))
            return ChatResult.failure("transport", f"request failed: {e.__class__.__name__}: {e}")
        finally:
            if self.telemetry is not None:
                self.telemetry.timing("llm_request_duration_seconds", time.perf_counter() - started)

        if not response.is_success:
            preview = response.text[:_BODY_PREVIEW_CHARS]
            logger.warning("LLM API returned status {}: {}", response.status_code, preview)
            emit_incr(self.telemetry, "llm_requests_total", labels=(("outcome", "upstream"),))
            return ChatResult.failure(
                "upstream",
                f"API error {response.status_code}: {preview}",
                status_code=response.status_code,
            )

        try:
            content, prompt_tokens, completion_tokens = self.parse_response(response.json())
        except (ValueError, ResponseShapeError) as e:
            logger.warning("Could not parse LLM response: {}", e)
            emit_incr(self.telemetry, "llm_requests_total", labels=(("outcome", "parse"),))
            return ChatResult.failure("parse", f"malformed response: {e}")

        logger.debug("LLM response: tokens={}/{}", prompt_tokens, completion_tokens)
        emit_incr(self.telemetry, "llm_requests_total", labels=(("outcome", "ok"),))
        return ChatResult.ok(content, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)

    @staticmethod
    def parse_response(payload: Any) -> tuple[str, int, int]:
        """Extract first-choice content and token usage from a completion payload."""
        if not isinstance(payload, dict):
            raise ResponseShapeError("response root is not an object")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ResponseShapeError("no choices in response")
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise ResponseShapeError("first choice has no message")

        content = message.get("content")
        if isinstance(content, list):
            content = "".join(
                str(part.get("text", "")) for part in content if isinstance(part, dict)
            )
        if not isinstance(content, str):
            raise ResponseShapeError("message content is not text")

        usage = payload.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return content, _as_int(usage.get("prompt_tokens")), _as_int(usage.get("completion_tokens"))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _as_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
