"""Token and cost estimation for evaluation calls."""

from __future__ import annotations

import math

from config.prompts.evaluation import EVALUATION_SYSTEM_PROMPT, build_evaluation_prompt
from models.evaluation import EvaluationInput, TokenUsage

# USD per 1M tokens
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4-turbo": {"input": 10.00, "output": 30.00},
    "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
    "claude-3-sonnet-20240229": {"input": 3.00, "output": 15.00},
}

# Typical evaluation response size
AVG_OUTPUT_TOKENS = 300


def estimate_token_count(text: str) -> int:
    """Rough estimate: ~4 characters per token for English text."""
    return math.ceil(len(text) / 4)


def _pricing_for(model: str) -> dict[str, float] | None:
    # LiteLLM-style names carry a provider prefix ("openai/gpt-4o")
    return MODEL_PRICING.get(model) or MODEL_PRICING.get(model.split("/", 1)[-1])


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Cost in USD; 0.0 for models without a pricing entry."""
    pricing = _pricing_for(model)
    if not pricing:
        return 0.0
    return (
        input_tokens / 1_000_000 * pricing["input"]
        + output_tokens / 1_000_000 * pricing["output"]
    )


def estimate_usage_cost(usage: TokenUsage | None, model: str) -> float | None:
    if usage is None:
        return None
    return estimate_cost(usage.prompt_tokens, usage.completion_tokens, model)


def estimate_prompt_cost(evaluation_input: EvaluationInput, model: str = "gpt-4o-mini") -> dict:
    """Estimate tokens and cost of one full-prompt evaluation before sending it."""
    prompt = build_evaluation_prompt(evaluation_input)
    input_tokens = estimate_token_count(EVALUATION_SYSTEM_PROMPT + prompt)
    return {
        "estimated_input_tokens": input_tokens,
        "estimated_output_tokens": AVG_OUTPUT_TOKENS,
        "estimated_cost_usd": estimate_cost(input_tokens, AVG_OUTPUT_TOKENS, model),
    }
