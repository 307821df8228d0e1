"""Domain-specific exceptions for the interview answer evaluator.

These exceptions let the orchestrator and API layers distinguish between
failure modes.  Only :class:`PreconditionError` and the persistence-level
errors (:class:`DuplicateAnswerError`, :class:`SessionClosedError`) ever
reach an HTTP caller; the provider and output errors are absorbed by the
retry loop and surface only as an ``ErrorCode`` in the evaluation response.
"""

from __future__ import annotations


class EvaluationError(Exception):
    """Base class for all evaluator errors."""


# ── Preconditions (4xx, never enter the pipeline) ─────────────


class PreconditionError(EvaluationError):
    """A referenced entity required before evaluation does not exist."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class SessionNotFoundError(PreconditionError):
    def __init__(self, session_id: str) -> None:
        super().__init__("session", session_id)


class QuestionNotFoundError(PreconditionError):
    def __init__(self, question_id: str) -> None:
        super().__init__("question", question_id)


class AnswerNotFoundError(PreconditionError):
    def __init__(self, session_id: str, question_id: str) -> None:
        super().__init__("answer", f"{session_id}/{question_id}")


# ── Retryable pipeline errors ─────────────────────────────────


class ProviderError(EvaluationError):
    """The LLM provider call failed: network error, timeout or non-2xx.

    Carries enough context for logs; the orchestrator treats every
    provider error the same way regardless of cause.
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        prefix = f"{provider} API error"
        if status_code is not None:
            prefix = f"{prefix}: {status_code}"
        super().__init__(f"{prefix} - {message}")


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within the per-attempt deadline."""

    def __init__(self, provider: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(provider, f"Request timeout after {timeout_seconds:g}s")


class MalformedOutputError(EvaluationError):
    """Provider text could not be recovered into a JSON object."""


class FieldValidationError(EvaluationError):
    """Recovered JSON is missing required criteria or has non-numeric values."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"Invalid or missing fields: {', '.join(fields)}")


# ── Persistence / configuration ───────────────────────────────


class DuplicateAnswerError(EvaluationError):
    """An answer for this (session, question) pair is already stored."""

    def __init__(self, session_id: str, question_id: str) -> None:
        self.session_id = session_id
        self.question_id = question_id
        super().__init__(
            f"Answer for question '{question_id}' already recorded in session '{session_id}'"
        )


class SessionClosedError(EvaluationError):
    """The session is no longer ``in_progress`` and accepts no further changes."""

    def __init__(self, session_id: str, status: str) -> None:
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session '{session_id}' is already {status}")


class UnknownProviderError(EvaluationError):
    """No LLM provider is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown LLM provider: {name}")
