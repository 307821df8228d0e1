"""Tests for retry / fallback decisions."""

import pytest

from config.prompts.evaluation import PromptVariant
from errors.exceptions import ProviderError, ProviderTimeoutError
from models.errors import ErrorCode
from models.evaluation import ValidationIssue, ValidationOutcome
from services.recovery_strategy import (
    DEFAULT_TIPS_TEXT,
    AttemptOutcome,
    OutcomeKind,
    RecoveryStrategy,
    default_evaluation_result,
    determine_recovery_strategy,
    next_prompt_variant,
)
from services.score_validator import parse_failure_outcome, validate_evaluation_data

S = RecoveryStrategy


# ── determine_recovery_strategy ──────────────────────────────


@pytest.mark.parametrize(
    "kind, retry_count, expected",
    [
        (OutcomeKind.VALID, 0, S.ACCEPT),
        (OutcomeKind.VALID, 2, S.ACCEPT),
        (OutcomeKind.MALFORMED_OUTPUT, 0, S.RETRY_SAME_PROMPT),
        (OutcomeKind.MALFORMED_OUTPUT, 1, S.RETRY_SIMPLIFIED),
        (OutcomeKind.MALFORMED_OUTPUT, 2, S.USE_DEFAULT),
        (OutcomeKind.PROVIDER_ERROR, 0, S.RETRY_SAME_PROMPT),
        (OutcomeKind.PROVIDER_ERROR, 1, S.RETRY_SIMPLIFIED),
        (OutcomeKind.PROVIDER_ERROR, 2, S.USE_DEFAULT),
        (OutcomeKind.FIELD_ERRORS, 0, S.RETRY_SIMPLIFIED),
        (OutcomeKind.FIELD_ERRORS, 1, S.RETRY_SIMPLIFIED),
        (OutcomeKind.FIELD_ERRORS, 2, S.USE_DEFAULT),
    ],
)
def test_strategy_table(kind, retry_count, expected):
    assert determine_recovery_strategy(kind, retry_count) is expected


def test_custom_retry_budget():
    assert determine_recovery_strategy(OutcomeKind.FIELD_ERRORS, 2, max_retries=4) is S.RETRY_SIMPLIFIED
    assert determine_recovery_strategy(OutcomeKind.FIELD_ERRORS, 0, max_retries=0) is S.USE_DEFAULT


def test_accepts_validation_outcome_directly(rubric):
    assert determine_recovery_strategy(parse_failure_outcome("x", "bad"), 0) is S.RETRY_SAME_PROMPT
    field_errors = ValidationOutcome(
        is_valid=False,
        errors=[ValidationIssue(field="clarity", message="Missing required field")],
    )
    assert determine_recovery_strategy(field_errors, 0) is S.RETRY_SIMPLIFIED


def test_repaired_output_is_accepted(rubric):
    outcome = validate_evaluation_data(
        {"concept_accuracy": 9, "example_usage": 3, "edge_cases": 2, "clarity": 1}, rubric
    )
    assert outcome.was_repaired
    assert determine_recovery_strategy(outcome, 0) is S.ACCEPT


# ── next_prompt_variant ──────────────────────────────────────


def test_next_prompt_variant():
    assert next_prompt_variant(S.RETRY_SAME_PROMPT, PromptVariant.FULL) is PromptVariant.FULL
    assert next_prompt_variant(S.RETRY_SIMPLIFIED, PromptVariant.FULL) is PromptVariant.FALLBACK
    # Once simplified, a same-prompt retry keeps the simplified prompt
    assert next_prompt_variant(S.RETRY_SAME_PROMPT, PromptVariant.FALLBACK) is PromptVariant.FALLBACK


# ── AttemptOutcome ───────────────────────────────────────────


class TestAttemptOutcome:
    def test_from_provider_error(self):
        outcome = AttemptOutcome.from_provider_error(ProviderError("openai", "boom", status_code=500))
        assert outcome.kind is OutcomeKind.PROVIDER_ERROR
        assert outcome.message == "openai API error: 500 - boom"
        assert outcome.error_code is ErrorCode.LLM_PROVIDER_ERROR

    def test_from_timeout(self):
        outcome = AttemptOutcome.from_provider_error(ProviderTimeoutError("anthropic", 30))
        assert outcome.kind is OutcomeKind.PROVIDER_ERROR
        assert "Request timeout after 30s" in outcome.message

    def test_from_parse_failure(self):
        outcome = AttemptOutcome.from_validation(parse_failure_outcome("garbage", "no JSON"))
        assert outcome.kind is OutcomeKind.MALFORMED_OUTPUT
        assert outcome.message == "no JSON"
        assert outcome.error_code is ErrorCode.MALFORMED_OUTPUT
        assert outcome.result is None

    def test_from_field_errors(self, rubric):
        outcome = AttemptOutcome.from_validation(
            validate_evaluation_data({"concept_accuracy": 2, "clarity": "n/a"}, rubric)
        )
        assert outcome.kind is OutcomeKind.FIELD_ERRORS
        assert outcome.error_code is ErrorCode.FIELD_VALIDATION_FAILED
        assert "example_usage" in outcome.message
        assert "clarity" in outcome.message

    def test_valid_has_no_error_code(self, rubric):
        outcome = AttemptOutcome.from_validation(
            validate_evaluation_data(
                {"concept_accuracy": 2, "example_usage": 1, "edge_cases": 0, "clarity": 1}, rubric
            )
        )
        assert outcome.kind is OutcomeKind.VALID
        assert outcome.error_code is None
        assert outcome.result.final_score == 4


def test_default_evaluation_result():
    result = default_evaluation_result("openai API error - boom")
    assert result.final_score == 0
    assert result.llm_score == {
        "concept_accuracy": 0,
        "example_usage": 0,
        "edge_cases": 0,
        "clarity": 0,
    }
    assert result.overall_feedback.startswith(
        "Evaluation could not be completed: openai API error - boom."
    )
    assert result.improvement_tips == DEFAULT_TIPS_TEXT
