"""Uniform LLM provider interface.

Every backend implements one coroutine::

    await provider.call(system_prompt, user_prompt, config) -> ProviderResponse

and translates it into its own request body.  Built-in providers:

    - ``openai``    — Chat Completions over raw HTTP (``httpx``), flat
                      ``messages`` list plus a ``response_format`` hint
    - ``anthropic`` — Messages API via the official SDK, separate ``system``
                      field, ``input_tokens``/``output_tokens`` usage
                      (see :mod:`services.anthropic_service`)
    - ``litellm``   — anything LiteLLM routes by model prefix, e.g.
                      ``groq/llama-3.1-8b-instant``

Every failure (network, non-2xx, unexpected body) is raised as
:class:`ProviderError`; :func:`call_with_timeout` races the call against a
deadline and raises :class:`ProviderTimeoutError` when it expires.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
import litellm
from pydantic import ValidationError

from config.llm_config import LLMConfig
from config.settings import get_settings
from errors.exceptions import ProviderError, ProviderTimeoutError, UnknownProviderError
from models.evaluation import ProviderResponse, TokenUsage
from services.concurrency import ConcurrencyLimiter

logger = logging.getLogger(__name__)

JSON_RESPONSE_FORMAT = "json_object"

# Raised while reading a 2xx body that does not have the expected shape
MALFORMED_BODY_ERRORS = (ValueError, KeyError, IndexError, TypeError, AttributeError, ValidationError)


class LLMProvider(ABC):
    """Abstract LLM backend."""

    name: str = ""

    @abstractmethod
    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        config: LLMConfig,
    ) -> ProviderResponse:
        """Send one system + user turn and return the completion text."""
        ...

    async def start(self) -> None:
        """Open connection pools.  Default: nothing to do."""

    async def close(self) -> None:
        """Release connection pools.  Default: nothing to do."""


# ── OpenAI (raw HTTP) ────────────────────────────────────────


class OpenAIProvider(LLMProvider):
    """OpenAI Chat Completions over ``httpx.AsyncClient``."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._http = http_client

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=30,
                max_keepalive_connections=15,
                keepalive_expiry=30,
            ),
        )
        logger.info("OpenAIProvider started — base_url=%s", self._base_url)

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("OpenAIProvider closed")

    # -- request translation -------------------------------------------------

    @staticmethod
    def build_request_body(system_prompt: str, user_prompt: str, config: LLMConfig) -> dict:
        body: dict[str, Any] = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **config.generation_kwargs(),
        }
        body["response_format"] = {"type": config.response_format or JSON_RESPONSE_FORMAT}
        return body

    @staticmethod
    def parse_usage(usage: dict | None) -> TokenUsage | None:
        if not usage:
            return None
        prompt = int(usage.get("prompt_tokens") or 0)
        completion = int(usage.get("completion_tokens") or 0)
        return TokenUsage(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=int(usage.get("total_tokens") or prompt + completion),
        )

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        config: LLMConfig,
    ) -> ProviderResponse:
        if not self._api_key:
            raise ProviderError(self.name, "API key not configured")
        if self._http is None:
            await self.start()

        body = self.build_request_body(system_prompt, user_prompt, config)
        try:
            response = await self._http.post(
                f"{self._base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise ProviderError(self.name, response.text[:300], status_code=response.status_code)

        try:
            data = response.json()
            choice = data["choices"][0]
            return ProviderResponse(
                content=choice["message"]["content"] or "",
                usage=self.parse_usage(data.get("usage")),
                finish_reason=choice.get("finish_reason"),
            )
        except MALFORMED_BODY_ERRORS as exc:
            raise ProviderError(self.name, f"Unexpected response body: {exc!r}") from exc


# ── LiteLLM (multi-provider) ─────────────────────────────────


class LiteLLMProvider(LLMProvider):
    """Route through ``litellm.acompletion`` using provider-prefixed model names."""

    name = "litellm"

    async def call(
        self,
        system_prompt: str,
        user_prompt: str,
        config: LLMConfig,
    ) -> ProviderResponse:
        kwargs: dict[str, Any] = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **config.generation_kwargs(),
        }
        if config.response_format:
            kwargs["response_format"] = {"type": config.response_format}

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as exc:  # litellm maps every backend error to its own types
            raise ProviderError(self.name, str(exc)) from exc

        try:
            choice = response.choices[0]
            usage = None
            if response.usage:
                usage = TokenUsage(
                    prompt_tokens=response.usage.prompt_tokens or 0,
                    completion_tokens=response.usage.completion_tokens or 0,
                    total_tokens=response.usage.total_tokens or 0,
                )
            return ProviderResponse(
                content=choice.message.content or "",
                usage=usage,
                finish_reason=choice.finish_reason,
            )
        except MALFORMED_BODY_ERRORS as exc:
            raise ProviderError(self.name, f"Unexpected response body: {exc!r}") from exc


# ── Registry ─────────────────────────────────────────────────


class ProviderRegistry:
    """Name → provider lookup.  Each application owns one registry."""

    def __init__(self, providers: list[LLMProvider] | None = None) -> None:
        self._providers: dict[str, LLMProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: LLMProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> LLMProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise UnknownProviderError(name)
        return provider

    @property
    def names(self) -> list[str]:
        return sorted(self._providers)

    async def start(self) -> None:
        for provider in self._providers.values():
            await provider.start()

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def build_default_registry() -> ProviderRegistry:
    """Registry with the built-in ``openai``, ``anthropic`` and ``litellm`` providers."""
    from services.anthropic_service import AnthropicProvider

    return ProviderRegistry([OpenAIProvider(), AnthropicProvider(), LiteLLMProvider()])


_registry: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """Get the process-wide provider registry."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry


def register_provider(provider: LLMProvider) -> None:
    """Add (or replace) a provider in the process-wide registry."""
    get_provider_registry().register(provider)


def get_provider(name: str) -> LLMProvider:
    """Look up a provider; raises :class:`UnknownProviderError`."""
    return get_provider_registry().get(name)


# ── Timeout race ─────────────────────────────────────────────


async def call_with_timeout(
    provider: LLMProvider,
    system_prompt: str,
    user_prompt: str,
    config: LLMConfig,
    timeout_seconds: float,
    limiter: ConcurrencyLimiter | None = None,
) -> ProviderResponse:
    """Run ``provider.call`` under a deadline.

    An expired deadline raises :class:`ProviderTimeoutError`, a subclass of
    :class:`ProviderError`, so callers handle both the same way.  Outer
    task cancellation still propagates as ``asyncio.CancelledError``.

    With a *limiter*, time spent waiting for a free slot counts against the
    same deadline.
    """
    if limiter is None:
        call = provider.call(system_prompt, user_prompt, config)
    else:
        call = limiter.run(provider.call, system_prompt, user_prompt, config)
    try:
        return await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise ProviderTimeoutError(provider.name, timeout_seconds) from exc
