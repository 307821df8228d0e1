"""Retry / fallback decisions for the evaluation loop.

Each provider attempt is reduced to an :class:`AttemptOutcome`; the
strategy selector maps ``(outcome kind, retry_count)`` to the next step:

    valid (even repaired)           → ACCEPT
    provider error / malformed JSON → same prompt on the first retry,
                                      simplified prompt afterwards
    field errors                    → simplified prompt
    retry_count >= max_retries      → USE_DEFAULT (any failure kind)

Total parse failures are usually formatting flukes, so the unchanged prompt
gets one more chance; structural field errors are better served by a
simpler ask.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from config.prompts.evaluation import PromptVariant
from errors.exceptions import FieldValidationError, MalformedOutputError, ProviderError
from models.errors import ErrorCode
from models.evaluation import (
    EvaluationResult,
    TokenUsage,
    ValidationOutcome,
)

DEFAULT_MAX_RETRIES = 2

DEFAULT_TIPS_TEXT = "Unable to provide specific improvement tips at this time."


class OutcomeKind(str, Enum):
    VALID = "valid"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_OUTPUT = "malformed_output"
    FIELD_ERRORS = "field_errors"


class RecoveryStrategy(str, Enum):
    ACCEPT = "accept"
    RETRY_SAME_PROMPT = "retry_same_prompt"
    RETRY_SIMPLIFIED = "retry_simplified"
    USE_DEFAULT = "use_default"


_ERROR_CODES: dict[OutcomeKind, ErrorCode] = {
    OutcomeKind.PROVIDER_ERROR: ErrorCode.LLM_PROVIDER_ERROR,
    OutcomeKind.MALFORMED_OUTPUT: ErrorCode.MALFORMED_OUTPUT,
    OutcomeKind.FIELD_ERRORS: ErrorCode.FIELD_VALIDATION_FAILED,
}


@dataclass(frozen=True)
class AttemptOutcome:
    """Tagged result of one attempt: ``VALID`` carries a result, the rest a message."""

    kind: OutcomeKind
    result: EvaluationResult | None = None
    message: str = ""
    usage: TokenUsage | None = None
    was_repaired: bool = False

    @property
    def error_code(self) -> ErrorCode | None:
        return _ERROR_CODES.get(self.kind)

    @classmethod
    def from_validation(
        cls, outcome: ValidationOutcome, usage: TokenUsage | None = None
    ) -> AttemptOutcome:
        kind = classify_validation(outcome)
        if kind is OutcomeKind.VALID:
            return cls(kind, result=outcome.data, usage=usage, was_repaired=outcome.was_repaired)
        if kind is OutcomeKind.MALFORMED_OUTPUT:
            message = str(MalformedOutputError(outcome.errors[0].message))
        else:
            message = str(FieldValidationError([e.field for e in outcome.errors]))
        return cls(kind, message=message, usage=usage)

    @classmethod
    def from_provider_error(cls, exc: ProviderError) -> AttemptOutcome:
        return cls(OutcomeKind.PROVIDER_ERROR, message=str(exc))


def classify_validation(outcome: ValidationOutcome) -> OutcomeKind:
    if outcome.is_valid and outcome.data is not None:
        return OutcomeKind.VALID
    if outcome.parse_failed:
        return OutcomeKind.MALFORMED_OUTPUT
    return OutcomeKind.FIELD_ERRORS


def determine_recovery_strategy(
    outcome: ValidationOutcome | OutcomeKind,
    retry_count: int,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> RecoveryStrategy:
    """Decide what to do after an attempt that has used *retry_count* retries."""
    kind = outcome if isinstance(outcome, OutcomeKind) else classify_validation(outcome)

    if kind is OutcomeKind.VALID:
        return RecoveryStrategy.ACCEPT
    if retry_count >= max_retries:
        return RecoveryStrategy.USE_DEFAULT
    if kind in (OutcomeKind.MALFORMED_OUTPUT, OutcomeKind.PROVIDER_ERROR):
        if retry_count == 0:
            return RecoveryStrategy.RETRY_SAME_PROMPT
        return RecoveryStrategy.RETRY_SIMPLIFIED
    return RecoveryStrategy.RETRY_SIMPLIFIED


def next_prompt_variant(strategy: RecoveryStrategy, current: PromptVariant) -> PromptVariant:
    """Prompt variant for the attempt that follows *strategy*."""
    if strategy is RecoveryStrategy.RETRY_SIMPLIFIED:
        return PromptVariant.FALLBACK
    return current


def default_evaluation_result(reason: str) -> EvaluationResult:
    """Deterministic all-zero result used when every attempt failed."""
    return EvaluationResult(
        concept_accuracy=0,
        example_usage=0,
        edge_cases=0,
        clarity=0,
        final_score=0,
        overall_feedback=(
            f"Evaluation could not be completed: {reason}. "
            "Please try again or contact support."
        ),
        improvement_tips=DEFAULT_TIPS_TEXT,
    )
