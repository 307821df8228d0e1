"""Interview session, persisted answer records and session statistics."""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, Field

from models.question import QuestionCategory


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class InterviewSession(BaseModel):
    """Server-side state of one interview session.

    ``total_score`` is only ever changed by the store's atomic increment.
    A session leaves ``in_progress`` exactly once, through
    ``SessionStore.complete_session``.
    """

    id: str
    title: str = "Mock interview"
    total_score: int = 0
    completed_questions: int = 0
    status: SessionStatus = SessionStatus.IN_PROGRESS
    created_at: float = Field(default_factory=time.time)
    completed_at: float | None = None


class LLMScore(BaseModel):
    """Per-criterion scores stored with an answer."""

    concept_accuracy: int
    example_usage: int
    edge_cases: int
    clarity: int


class AnswerRecord(BaseModel):
    """Persisted answer — exactly one per (session_id, question_id)."""

    session_id: str
    question_id: str
    category: QuestionCategory | None = None
    user_answer: str
    llm_score: LLMScore
    final_score: int = Field(ge=0, le=10)
    feedback: str
    time_taken_seconds: int | None = Field(default=None, ge=0)
    is_flagged: bool = False
    created_at: float = Field(default_factory=time.time)


class AnswerHistory(BaseModel):
    """One page of a session's answers, newest first.

    ``count`` is the number of matching answers before paging.
    """

    answers: list[AnswerRecord]
    count: int


class SessionStats(BaseModel):
    total_answers: int = 0
    average_score: float = 0.0
    category_scores: dict[str, float] = Field(default_factory=dict)
    recent_trend: list[int] = Field(default_factory=list)
