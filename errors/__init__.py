"""Custom exception hierarchy for the interview answer evaluator."""

from errors.exceptions import (
    AnswerNotFoundError,
    DuplicateAnswerError,
    EvaluationError,
    FieldValidationError,
    MalformedOutputError,
    PreconditionError,
    ProviderError,
    ProviderTimeoutError,
    QuestionNotFoundError,
    SessionClosedError,
    SessionNotFoundError,
    UnknownProviderError,
)

__all__ = [
    "AnswerNotFoundError",
    "DuplicateAnswerError",
    "EvaluationError",
    "FieldValidationError",
    "MalformedOutputError",
    "PreconditionError",
    "ProviderError",
    "ProviderTimeoutError",
    "QuestionNotFoundError",
    "SessionClosedError",
    "SessionNotFoundError",
    "UnknownProviderError",
]
