"""API request / response models."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from models.session import SessionStatus


class EvaluateRequest(BaseModel):
    """POST /api/evaluate — request body."""

    session_id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    user_answer: str = Field(min_length=1)
    time_taken_seconds: int | None = Field(default=None, ge=0)


class EvaluateResponse(BaseModel):
    """POST /api/evaluate — response body.

    Same shape for success and exhausted failure; on failure every score is
    zero and ``feedback`` explains why.
    """

    score: int = Field(ge=0, le=10)
    feedback: str
    tips: str
    success: bool = True


class CreateSessionRequest(BaseModel):
    """POST /api/sessions — request body."""

    title: str = "Mock interview"


class CompleteSessionRequest(BaseModel):
    """POST /api/sessions/{id}/complete — request body."""

    status: SessionStatus = SessionStatus.COMPLETED

    @model_validator(mode="after")
    def _must_be_terminal(self) -> CompleteSessionRequest:
        if self.status is SessionStatus.IN_PROGRESS:
            raise ValueError("status must be 'completed' or 'abandoned'")
        return self


class FlagAnswerRequest(BaseModel):
    """PATCH /api/sessions/{id}/answers/{question_id} — request body."""

    is_flagged: bool = True
