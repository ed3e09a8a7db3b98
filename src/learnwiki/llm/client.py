"""LiteLLM-based LLM client."""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, NoReturn

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
    Timeout,
)

from learnwiki.config import LLMConfig, load_settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM client errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM provider."""

    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication with the LLM provider fails."""

    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM provider."""

    pass


class LLMTimeoutError(LLMError):
    """Raised when the provider does not answer within the call timeout."""

    pass


# Checked in order, most specific first.
_ERROR_MAP: list[tuple[type[Exception], type[LLMError], str]] = [
    (AuthenticationError, LLMAuthenticationError, "Authentication failed"),
    (RateLimitError, LLMRateLimitError, "Rate limit exceeded"),
    (Timeout, LLMTimeoutError, "Request timed out"),
    (APIConnectionError, LLMConnectionError, "Connection failed"),
    (APIError, LLMError, "LLM API error"),
]

_PROVIDER_ERRORS = tuple(source for source, _, _ in _ERROR_MAP)


class LLMClient:
    """Unified LLM client supporting multiple providers via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
        timeout: float | None = None,
        config: LLMConfig | None = None,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, anthropic, google, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom endpoint (Ollama, or an OpenAI-compatible base URL).
            log_path: Optional path to JSONL log file for query logging.
            timeout: Per-call timeout in seconds passed to the provider.
            config: Token and temperature defaults. Loaded from settings if omitted.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path
        self.timeout = timeout
        self._config = config

    @property
    def config(self) -> LLMConfig:
        if self._config is None:
            self._config = load_settings().llm
        return self._config

    def _log_query(
        self,
        system_prompt: str | None,
        prompt: str,
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
        error_details: dict | None = None,
    ) -> None:
        """Append a query record to the JSONL log file."""
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "system_prompt": system_prompt,
                "prompt": prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }

        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            # Don't let logging failures break the application
            logger.debug(f"Could not write LLM query log: {e}")

    def _extract_error_details(self, e: Exception) -> dict | None:
        """Extract HTTP status and provider info from LiteLLM exceptions."""
        details: dict = {}

        if hasattr(e, "status_code"):
            details["status_code"] = e.status_code

        response = getattr(e, "response", None)
        if response is not None and hasattr(response, "headers"):
            retry_after = response.headers.get("retry-after")
            if retry_after:
                details["retry_after"] = retry_after

        if hasattr(e, "llm_provider"):
            details["llm_provider"] = e.llm_provider

        return details if details else None

    def _get_model_string(self) -> str:
        """Get LiteLLM model string in provider/model format."""
        if self.provider == "openai":
            return self.model  # OpenAI is default
        elif self.provider == "ollama":
            return f"ollama/{self.model}"
        else:
            return f"{self.provider}/{self.model}"

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        """Generate completion from prompt.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.
            json_mode: Ask providers that support it for a JSON object.

        Returns:
            Generated text response.

        Raises:
            LLMError: Or a subclass, when the provider call fails.
        """
        if temperature is None:
            temperature = self.config.default_temperature
        if max_tokens is None:
            max_tokens = self.config.max_tokens

        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.endpoint and self.provider in ("ollama", "openai"):
            kwargs["api_base"] = self.endpoint

        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        if json_mode and self.provider == "openai":
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except _PROVIDER_ERRORS as e:
            self._raise_mapped(e, system_prompt, prompt, temperature, max_tokens, start_time)

        result: str = str(response.choices[0].message.content or "")
        self._log_query(
            system_prompt,
            prompt,
            temperature,
            max_tokens,
            response=result,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
            error=None,
        )
        return result

    def _raise_mapped(
        self,
        e: Exception,
        system_prompt: str | None,
        prompt: str,
        temperature: float,
        max_tokens: int,
        start_time: float,
    ) -> NoReturn:
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        self._log_query(
            system_prompt,
            prompt,
            temperature,
            max_tokens,
            response=None,
            duration_ms=duration_ms,
            error=str(e),
            error_details=self._extract_error_details(e),
        )
        for source, target, label in _ERROR_MAP:
            if isinstance(e, source):
                raise target(f"{label}: {e}") from e
        raise LLMError(f"LLM API error: {e}") from e

    async def generate_with_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> str:
        """Generate completion expecting JSON response.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.

        Returns:
            Generated JSON string.
        """
        full_system = (system_prompt or "") + "\n\nRespond with valid JSON only."
        return await self.generate(
            prompt,
            system_prompt=full_system.strip(),
            temperature=self.config.json_temperature,
            json_mode=True,
        )
