"""Structured error codes.

Every error that leaves the service, either as an HTTP ``detail`` or inside
``EvaluationResponse.error``, carries one of these codes.  Messages follow
the format::

    {ERROR_CODE}: {human_readable_detail}
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Frozen error codes."""

    INVALID_REQUEST = "INVALID_REQUEST"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    ANSWER_NOT_FOUND = "ANSWER_NOT_FOUND"
    DUPLICATE_ANSWER = "DUPLICATE_ANSWER"
    SESSION_CLOSED = "SESSION_CLOSED"
    LLM_PROVIDER_ERROR = "LLM_PROVIDER_ERROR"
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    FIELD_VALIDATION_FAILED = "FIELD_VALIDATION_FAILED"
    EVALUATION_FAILED = "EVALUATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def format_error(code: ErrorCode, detail: str) -> str:
    """Format an error for API output.

    Returns:
        ``{ERROR_CODE}: {detail}``
    """
    return f"{code.value}: {detail}"

