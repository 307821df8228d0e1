"""Reusable LLM generation parameters.

LLMConfig is a standalone Pydantic model that can be:
- built from Settings as the global default,
- held by an evaluator for its own provider/model choice,
- passed per-call for one-off overrides.

Priority chain (low → high):
    .env global defaults  →  evaluator-level LLMConfig  →  per-call overrides
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM generation parameters shared by every provider.

    All fields are optional.  ``None`` means "use the provider's default".
    """

    provider: str | None = Field(
        default=None, description="Registered provider name, e.g. 'openai'"
    )
    model: str | None = Field(default=None, description="Provider model identifier")
    max_tokens: int | None = Field(default=None, ge=1, description="Max tokens to generate")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    frequency_penalty: float | None = Field(
        default=None, ge=-2.0, le=2.0, description="OpenAI-style frequency penalty"
    )
    presence_penalty: float | None = Field(
        default=None, ge=-2.0, le=2.0, description="OpenAI-style presence penalty"
    )
    response_format: str | None = Field(
        default=None, description="'json_object' for structured output"
    )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """Return a new LLMConfig: *self* as base, *overrides* wins on non-None fields."""
        base = self.model_dump(exclude_none=True)
        over = overrides.model_dump(exclude_none=True)
        base.update(over)
        return LLMConfig(**base)

    def generation_kwargs(self, *fields: str) -> dict:
        """Collect the non-None sampling parameters named in *fields*.

        Providers pass the subset their API accepts; with no arguments every
        sampling parameter is considered.
        """
        names = fields or (
            "max_tokens",
            "temperature",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
        )
        kw: dict = {}
        for name in names:
            val = getattr(self, name)
            if val is not None:
                kw[name] = val
        return kw
