"""Anthropic Messages API provider."""

from __future__ import annotations

import logging

import anthropic

from config.llm_config import LLMConfig
from config.settings import get_settings
from errors.exceptions import ProviderError
from models.evaluation import ProviderResponse, TokenUsage
from services.llm_service import MALFORMED_BODY_ERRORS, LLMProvider

logger = logging.getLogger(__name__)

# The Messages API requires max_tokens on every request
DEFAULT_MAX_TOKENS = 1024


class AnthropicProvider(LLMProvider):
    """Wrapper around ``anthropic.AsyncAnthropic`` for single-turn scoring calls.

    Retries are disabled on the SDK client; the evaluation loop owns the
    retry budget.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.anthropic_api_key
        self._base_url = settings.anthropic_base_url
        self._version = settings.anthropic_version
        self.client = client

    def _ensure_client(self) -> anthropic.AsyncAnthropic:
        if self.client is None:
            if not self._api_key:
                raise ProviderError(self.name, "API key not configured")
            self.client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                base_url=self._base_url,
                default_headers={"anthropic-version": self._version},
                max_retries=0,
            )
        return self.client

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None

    @staticmethod
    def build_request_kwargs(system_prompt: str, user_prompt: str, config: LLMConfig) -> dict:
        """Translate the uniform call into Messages API keyword arguments."""
        kwargs = {
            "model": config.model,
            "max_tokens": config.max_tokens or DEFAULT_MAX_TOKENS,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        return kwargs

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        config: LLMConfig,
    ) -> ProviderResponse:
        client = self._ensure_client()
        kwargs = self.build_request_kwargs(system_prompt, user_prompt, config)

        try:
            response = await client.messages.create(**kwargs)
        except anthropic.APIStatusError as exc:
            raise ProviderError(self.name, exc.message, status_code=exc.status_code) from exc
        except anthropic.APIError as exc:
            raise ProviderError(self.name, str(exc)) from exc

        try:
            text = "".join(block.text for block in response.content if block.type == "text")
            usage = None
            if response.usage:
                usage = TokenUsage(
                    prompt_tokens=response.usage.input_tokens,
                    completion_tokens=response.usage.output_tokens,
                    total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                )
            return ProviderResponse(content=text, usage=usage, finish_reason=response.stop_reason)
        except MALFORMED_BODY_ERRORS as exc:
            raise ProviderError(self.name, f"Unexpected response body: {exc!r}") from exc
