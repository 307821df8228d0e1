"""Validate and repair recovered evaluation JSON against a rubric.

Numeric criteria:
    missing / None / non-numeric  → error, 0 substituted
    non-integer                   → rounded half-up, warning
    outside [0, max_score]        → clamped, warning

``final_score`` from the model is never trusted: it is always the sum of the
repaired criteria, and a disagreeing claim is only a warning.

Text fields are defaulted when missing or empty and truncated (with an
ellipsis) when too long.  Text repairs are warnings and never affect
``is_valid``.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from models.evaluation import (
    RESPONSE_FIELD,
    EvaluationResult,
    ValidationIssue,
    ValidationOutcome,
)
from models.rubric import CRITERIA, Rubric
from services.response_recoverer import RecoveredJson, RecoveryFailure, recover_json

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK_TEXT = "No feedback provided."
ELLIPSIS = "..."
MAX_FEEDBACK_LENGTH = 1000
MAX_TIPS_LENGTH = 1000

TEXT_FIELDS: tuple[str, ...] = ("overall_feedback", "improvement_tips")
REQUIRED_FIELDS: tuple[str, ...] = (*CRITERIA, "final_score", *TEXT_FIELDS)


def _coerce_number(value: Any) -> int | float | None:
    """Numeric coercion: ints pass through, floats/numeric strings become floats.

    Infinities count as numbers (they clamp).  Booleans, empty strings, NaN
    and everything else are non-numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def _round_half_up(number: float) -> int:
    return math.floor(number + 0.5)


def validate_and_repair_score(
    value: Any,
    field: str,
    max_score: int,
    errors: list[ValidationIssue],
    warnings: list[ValidationIssue],
) -> int:
    """Return a score inside ``[0, max_score]`` for one criterion."""
    expected = f"number between 0 and {max_score}"

    if value is None:
        errors.append(ValidationIssue(
            field=field, message="Missing required field", received=None, action=expected,
        ))
        return 0

    number = _coerce_number(value)
    if number is None:
        errors.append(ValidationIssue(
            field=field, message="Invalid number", received=value, action=expected,
        ))
        return 0

    if isinstance(number, float) and math.isinf(number):
        score = max_score if number > 0 else 0
        warnings.append(ValidationIssue(
            field=field,
            message="Score above maximum" if number > 0 else "Score below minimum",
            received=value,
            action=f"Clamped {number:g} to {score}",
        ))
        return score

    if isinstance(number, float):
        if number.is_integer():
            score = int(number)
        else:
            score = _round_half_up(number)
            warnings.append(ValidationIssue(
                field=field,
                message="Score was not an integer",
                received=value,
                action=f"Rounded {number:g} to {score}",
            ))
    else:
        score = number

    if score < 0:
        warnings.append(ValidationIssue(
            field=field, message="Score below minimum", received=value,
            action=f"Clamped {score} to 0",
        ))
        score = 0
    elif score > max_score:
        warnings.append(ValidationIssue(
            field=field, message="Score above maximum", received=value,
            action=f"Clamped {score} to {max_score}",
        ))
        score = max_score

    return score


def validate_text_field(
    value: Any,
    field: str,
    max_length: int,
    warnings: list[ValidationIssue],
) -> str:
    """Return a non-empty string of at most *max_length* characters."""
    if value is None:
        warnings.append(ValidationIssue(
            field=field, message="Missing field", action="Set default value",
        ))
        return DEFAULT_FEEDBACK_TEXT

    if isinstance(value, str):
        text = value.strip()
    elif isinstance(value, list):
        # Models sometimes answer tips as a bullet list
        text = " ".join(str(item).strip() for item in value if str(item).strip())
        warnings.append(ValidationIssue(
            field=field, message="Expected a string, got a list", action="Joined list items",
        ))
    else:
        text = str(value).strip()
        warnings.append(ValidationIssue(
            field=field,
            message=f"Expected a string, got {type(value).__name__}",
            action="Converted to string",
        ))

    if not text:
        warnings.append(ValidationIssue(
            field=field, message="Empty string", action="Set default value",
        ))
        return DEFAULT_FEEDBACK_TEXT

    if len(text) > max_length:
        keep = max(max_length - len(ELLIPSIS), 0)
        warnings.append(ValidationIssue(
            field=field,
            message="String exceeds maximum length",
            action=f"Truncated from {len(text)} to {max_length} characters",
        ))
        text = text[:keep].rstrip() + ELLIPSIS

    return text


def validate_evaluation_data(
    data: dict[str, Any],
    rubric: Rubric,
    max_feedback_length: int = MAX_FEEDBACK_LENGTH,
    max_tips_length: int = MAX_TIPS_LENGTH,
) -> ValidationOutcome:
    """Validate a recovered JSON object and build the repaired result."""
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    scores = {
        name: validate_and_repair_score(
            data.get(name), name, rubric.criterion(name).max_score, errors, warnings
        )
        for name in CRITERIA
    }
    final_score = sum(scores.values())

    claimed = data.get("final_score")
    if claimed is not None:
        claimed_number = _coerce_number(claimed)
        if claimed_number is None:
            warnings.append(ValidationIssue(
                field="final_score",
                message="Provided final_score is not a number",
                received=claimed,
                action=f"Replaced with computed {final_score}",
            ))
        elif claimed_number != final_score:
            warnings.append(ValidationIssue(
                field="final_score",
                message="Provided final_score doesn't match sum of individual scores",
                received=claimed,
                action=f"Corrected from {claimed_number:g} to {final_score}",
            ))

    feedback = validate_text_field(
        data.get("overall_feedback"), "overall_feedback", max_feedback_length, warnings
    )
    tips = validate_text_field(
        data.get("improvement_tips"), "improvement_tips", max_tips_length, warnings
    )

    result = EvaluationResult(
        **scores,
        final_score=final_score,
        overall_feedback=feedback,
        improvement_tips=tips,
    )

    if warnings:
        logger.debug(
            "Repaired evaluation: %s",
            "; ".join(f"{w.field}: {w.action}" for w in warnings),
        )

    # Text fields only ever produce warnings, so any error is a criterion error.
    return ValidationOutcome(
        is_valid=not errors,
        data=result,
        errors=errors,
        warnings=warnings,
        was_repaired=bool(warnings),
    )


def parse_failure_outcome(raw: str, message: str) -> ValidationOutcome:
    """Outcome for text the recoverer could not turn into an object."""
    return ValidationOutcome(
        is_valid=False,
        errors=[ValidationIssue(
            field=RESPONSE_FIELD,
            message=message,
            received=raw[:200],
            action="Valid JSON object",
        )],
    )


def validate_evaluation_response(
    raw: str,
    rubric: Rubric,
    max_feedback_length: int = MAX_FEEDBACK_LENGTH,
    max_tips_length: int = MAX_TIPS_LENGTH,
) -> ValidationOutcome:
    """Recover and validate raw provider text in one step."""
    recovered = recover_json(raw)
    if isinstance(recovered, RecoveryFailure):
        return parse_failure_outcome(raw, recovered.error)
    return validate_evaluation_data(
        recovered.data, rubric, max_feedback_length, max_tips_length
    )


def quick_validate(raw: str) -> bool:
    """Cheap pre-check: does *raw* recover to an object with every schema key?"""
    recovered = recover_json(raw)
    if not isinstance(recovered, RecoveredJson):
        return False
    return all(field in recovered.data for field in REQUIRED_FIELDS)
