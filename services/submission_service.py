"""Answer submission — preconditions, evaluation and session aggregation.

Flow for one submitted answer::

    session exists? ─no→ SessionNotFoundError
    session in progress? ─no→ SessionClosedError
    question exists? ─no→ QuestionNotFoundError
    already answered? ─yes→ DuplicateAnswerError
    evaluate (never raises for LLM failures)
    success → insert AnswerRecord, then atomic total_score increment
    failure → nothing persisted; the candidate may resubmit

The insert is the uniqueness boundary: two racing submissions can both pass
the pre-check, but only one insert succeeds and only that one increments
the total.
"""

from __future__ import annotations

import logging

from agents.evaluator import AnswerEvaluator, get_answer_evaluator
from errors.exceptions import (
    DuplicateAnswerError,
    QuestionNotFoundError,
    SessionClosedError,
    SessionNotFoundError,
)
from models.evaluation import EvaluationInput
from models.request import EvaluateRequest, EvaluateResponse
from models.session import AnswerRecord, LLMScore, SessionStatus
from services.question_bank import QuestionBank, get_question_bank
from services.session_store import SessionStore, get_session_store

logger = logging.getLogger(__name__)


class AnswerSubmissionService:
    def __init__(
        self,
        evaluator: AnswerEvaluator,
        store: SessionStore,
        question_bank: QuestionBank,
    ) -> None:
        self.evaluator = evaluator
        self.store = store
        self.question_bank = question_bank

    async def submit(self, request: EvaluateRequest) -> EvaluateResponse:
        session = await self.store.get_session(request.session_id)
        if session is None:
            raise SessionNotFoundError(request.session_id)
        if session.status is not SessionStatus.IN_PROGRESS:
            raise SessionClosedError(request.session_id, session.status.value)

        question = await self.question_bank.get_question(request.question_id)
        if question is None:
            raise QuestionNotFoundError(request.question_id)

        # Cheap pre-check so a repeat submission does not cost an LLM call
        if await self.store.get_answer(request.session_id, request.question_id):
            raise DuplicateAnswerError(request.session_id, request.question_id)

        evaluation = await self.evaluator.evaluate(EvaluationInput(
            question_text=question.question_text,
            ideal_answer=question.ideal_answer,
            rubric=question.rubric,
            user_answer=request.user_answer,
        ))
        result = evaluation.data

        if evaluation.success:
            await self.store.insert_answer(AnswerRecord(
                session_id=request.session_id,
                question_id=request.question_id,
                category=question.category,
                user_answer=request.user_answer,
                llm_score=LLMScore(**result.llm_score),
                final_score=result.final_score,
                feedback=result.overall_feedback,
                time_taken_seconds=request.time_taken_seconds,
            ))
            total = await self.store.increment_total_score(
                request.session_id, result.final_score
            )
            logger.info(
                "Scored %s/%s: %d/10 (session total %d, %d retries)",
                request.session_id,
                request.question_id,
                result.final_score,
                total,
                evaluation.metadata.retry_count,
            )
        else:
            logger.warning(
                "Evaluation failed for %s/%s, answer not recorded: %s",
                request.session_id,
                request.question_id,
                evaluation.error.details if evaluation.error else "unknown error",
            )

        return EvaluateResponse(
            score=result.final_score,
            feedback=result.overall_feedback,
            tips=result.improvement_tips,
            success=evaluation.success,
        )


_service: AnswerSubmissionService | None = None


def get_submission_service() -> AnswerSubmissionService:
    """FastAPI dependency — shared submission service."""
    global _service
    if _service is None:
        _service = AnswerSubmissionService(
            evaluator=get_answer_evaluator(),
            store=get_session_store(),
            question_bank=get_question_bank(),
        )
    return _service
