"""Evaluation pipeline models.

These models mark the typed side of the parse-then-validate boundary: raw
provider text is recovered into a plain dict, and only the validator turns
that dict into an :class:`EvaluationResult`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.errors import ErrorCode
from models.rubric import CRITERIA, Rubric

# Pseudo-field used for whole-response parse failures
RESPONSE_FIELD = "response"


class EvaluationInput(BaseModel):
    """Everything the prompt builder needs for one evaluation."""

    model_config = ConfigDict(frozen=True)

    question_text: str
    ideal_answer: str
    rubric: Rubric
    user_answer: str


class EvaluationResult(BaseModel):
    """Validated, bounded score + feedback for one answer."""

    model_config = ConfigDict(frozen=True)

    concept_accuracy: int = Field(ge=0)
    example_usage: int = Field(ge=0)
    edge_cases: int = Field(ge=0)
    clarity: int = Field(ge=0)
    final_score: int = Field(ge=0)
    overall_feedback: str
    improvement_tips: str

    @model_validator(mode="after")
    def _check_final_score(self) -> EvaluationResult:
        expected = sum(getattr(self, name) for name in CRITERIA)
        if self.final_score != expected:
            raise ValueError(
                f"final_score {self.final_score} != sum of criteria {expected}"
            )
        return self

    @property
    def llm_score(self) -> dict[str, int]:
        """Per-criterion scores, in the shape persisted with the answer."""
        return {name: getattr(self, name) for name in CRITERIA}


class TokenUsage(BaseModel):
    """Provider token accounting, normalised to OpenAI field names."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ProviderResponse(BaseModel):
    """Uniform result of a provider call."""

    content: str
    usage: TokenUsage | None = None
    finish_reason: str | None = None


class EvaluationMetadata(BaseModel):
    """Timing / usage information attached to every evaluation response."""

    model_used: str  # provider name
    model_version: str  # provider model id
    timestamp: datetime
    processing_time_ms: int
    token_usage: TokenUsage | None = None
    retry_count: int = 0
    estimated_cost_usd: float | None = None


class EvaluationErrorInfo(BaseModel):
    """Why an evaluation fell back to the default result."""

    code: ErrorCode
    message: str
    details: str | None = None


class EvaluationResponse(BaseModel):
    """Orchestrator output.  ``data`` is always a well-formed result."""

    success: bool
    data: EvaluationResult
    metadata: EvaluationMetadata
    error: EvaluationErrorInfo | None = None


class ValidationIssue(BaseModel):
    """A single validation error or repair warning."""

    field: str
    message: str
    received: Any = None
    action: str = ""


class ValidationOutcome(BaseModel):
    """Result of validating one recovered provider response.

    ``errors`` are unrecoverable (field missing / non-numeric, or the whole
    response unparseable); ``warnings`` are local repairs.
    """

    is_valid: bool
    data: EvaluationResult | None = None
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    was_repaired: bool = False

    @property
    def parse_failed(self) -> bool:
        """True when the response could not be recovered into an object at all."""
        return any(e.field == RESPONSE_FIELD for e in self.errors)

